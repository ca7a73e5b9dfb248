"""capi-assets build action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from capi_assets.pipeline import build_provider, provider_version
from capi_assets.repository import read_provider_versions

from . import selector
from .format import OUTPUT_FORMATS, print_documents

_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """capi-assets build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Build the platform assets of a provider without writing them",
                description="""Runs the import pipeline for a single provider
                    and prints the RBAC objects, packaged components and
                    activation record.""",
            ),
        )
        args.add_argument(
            "provider",
            type=str,
            help="Name of the provider to build",
        )
        args.add_argument(
            "--output",
            "-o",
            choices=OUTPUT_FORMATS,
            default="yaml",
            help="Output format of the command",
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        root: pathlib.Path,
        config: pathlib.Path | None,
        provider: str,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        import_config = await selector.load_config(config)
        provider_config = import_config.provider(provider)
        versions = await read_provider_versions(root / import_config.versions_file)
        version = provider_version(versions, provider_config.name)
        build = await build_provider(provider_config, version, import_config, root)
        docs = [obj.doc for obj in build.rbac]
        docs.append(build.package.artifact)
        docs.append(build.package.activation)
        print_documents(docs, output)
