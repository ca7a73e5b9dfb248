"""Fixtures for capi-assets tests."""

from pathlib import Path
import shutil
from typing import Any

import pytest

from capi_assets.manifest import ManifestObject

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """A copy of the test data that outputs may be written into."""
    dest = tmp_path / "root"
    shutil.copytree(TESTDATA, dest)
    return dest


def make_object(
    kind: str,
    name: str,
    namespace: str | None = None,
    annotations: dict[str, str] | None = None,
    **fields: Any,
) -> ManifestObject:
    """Build a ManifestObject for tests."""
    metadata: dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    if annotations:
        metadata["annotations"] = dict(annotations)
    return ManifestObject.parse_doc(
        {"apiVersion": "v1", "kind": kind, "metadata": metadata, **fields}
    )
