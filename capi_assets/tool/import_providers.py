"""capi-assets import action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from capi_assets.pipeline import import_providers

from . import selector

_LOGGER = logging.getLogger(__name__)


class ImportAction:
    """capi-assets import action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "import",
                help="Import providers and write the platform assets",
                description="""Reads the published components of each provider
                    at the version in the versions file, rewrites them for the
                    platform and writes the packaged components, activation
                    records, RBAC manifests and image catalog.""",
            ),
        )
        args.add_argument(
            "--provider",
            type=str,
            default=None,
            help="Only import the provider with this name",
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        root: pathlib.Path,
        config: pathlib.Path | None,
        provider: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        import_config = await selector.load_config(config)
        imported = await import_providers(import_config, root, provider)
        for context in imported:
            print(f"Imported {context.type_name} {context.name} {context.version}")
