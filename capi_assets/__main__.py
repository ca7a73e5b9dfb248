"""Run the capi-assets command line tool."""

from capi_assets.tool.capi_assets import main

main()
