"""Library for formatting command output."""

from collections.abc import Generator
import json
from typing import Any, TextIO

from capi_assets.manifest import dump_documents

PADDING = 4

OUTPUT_FORMATS = ["yaml", "json"]


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the header and rows padded to the widest value of each column."""
    data = [headers] + rows
    widths = [max(len(row[i]) for row in data) for i in range(len(headers))]
    for row in data:
        yield "".join(
            value.ljust(width + PADDING) for value, width in zip(row, widths)
        ).rstrip()


def print_table(
    data: list[dict[str, Any]], keys: list[str], file: TextIO | None = None
) -> None:
    """Print the selected keys of each data object as columns."""
    if not data:
        return
    rows = [[str(row[key]) for key in keys] for row in data]
    for line in format_columns([key.upper() for key in keys], rows):
        print(line, file=file)


def print_documents(
    docs: list[Any], output: str = "yaml", file: TextIO | None = None
) -> None:
    """Print documents as a YAML stream or a JSON list."""
    if output == "json":
        print(json.dumps(docs, indent=2, sort_keys=False), file=file)
        return
    print(dump_documents(docs), end="", file=file)
