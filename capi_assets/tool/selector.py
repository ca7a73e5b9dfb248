"""Library for flags shared by commands."""

from argparse import ArgumentParser
import logging
import pathlib

from capi_assets.config import ImportConfig, read_config

_LOGGER = logging.getLogger(__name__)


def add_common_flags(args: ArgumentParser) -> None:
    """Add flags locating the import root and configuration."""
    args.add_argument(
        "--root",
        type=pathlib.Path,
        default=pathlib.Path("."),
        help="Directory that relative paths in the configuration are resolved against",
    )
    args.add_argument(
        "--config",
        type=pathlib.Path,
        default=None,
        help="YAML configuration file, the built-in provider list is used if not set",
    )


async def load_config(config: pathlib.Path | None) -> ImportConfig:
    """Return the configuration from the file, or the defaults."""
    if config is None:
        _LOGGER.debug("Using default configuration")
        return ImportConfig()
    _LOGGER.debug("Reading configuration %s", config)
    return await read_config(config)
