"""Command line tool for importing Cluster API providers as platform assets."""

import argparse
import asyncio
import logging
import sys
import traceback

from capi_assets.exceptions import AssetsException
from . import build, images, import_providers

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for importing Cluster API providers.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    import_providers.ImportAction.register(subparsers)
    build.BuildAction.register(subparsers)
    images.ImagesAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """capi-assets command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except AssetsException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("capi-assets error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
