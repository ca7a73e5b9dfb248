"""
capi-assets turns the published components of Cluster API providers into
OpenShift platform assets.

The pipeline lives in `capi_assets.pipeline`, with each step in its own module:
`certificates` (cert-manager to service CA), `rbac`, `filters`, `image` and
`packager`.
"""

__all__ = [
    "certificates",
    "components",
    "config",
    "exceptions",
    "filters",
    "image",
    "manifest",
    "packager",
    "pipeline",
    "provider",
    "rbac",
    "repository",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
