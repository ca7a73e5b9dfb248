"""capi-assets images action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from capi_assets.image import read_image_catalog

from . import selector
from .format import OUTPUT_FORMATS, print_documents, print_table

_LOGGER = logging.getLogger(__name__)


class ImagesAction:
    """capi-assets images action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "images",
                help="Print the image catalog",
                description="Print the image catalog key and image of every entry",
            ),
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["table"] + OUTPUT_FORMATS,
            default="table",
            help="Output format of the command",
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        root: pathlib.Path,
        config: pathlib.Path | None,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        import_config = await selector.load_config(config)
        catalog = await read_image_catalog(root / import_config.images_file)
        if output == "table":
            rows = [{"key": key, "image": catalog[key]} for key in sorted(catalog)]
            print_table(rows, ["key", "image"])
            return
        print_documents([dict(sorted(catalog.items()))], output)
