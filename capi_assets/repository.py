"""Repositories that publish provider components.

A repository serves the release files of a single provider by version. Two
layouts are supported:

  - A local directory laid out like a clusterctl local repository, with one
    sub-directory per version containing the release files e.g.
    `repository/infrastructure-aws/v2.2.0/infrastructure-components.yaml`.
  - An OCI artifact per version, e.g. `oci://ghcr.io/org/provider` with the
    release files pulled from `ghcr.io/org/provider:v2.2.0`.
"""

from abc import ABC, abstractmethod
import json
import logging
from pathlib import Path
import tempfile

import aiofiles
from aiofiles.ospath import isfile
from oras.client import OrasClient
from slugify import slugify

from .exceptions import InputException, RepositoryException
from .provider import ProviderType

__all__ = [
    "Repository",
    "LocalRepository",
    "OCIRepository",
    "METADATA_FILE",
    "OCI_SCHEME",
    "read_provider_versions",
]

_LOGGER = logging.getLogger(__name__)

METADATA_FILE = "metadata.yaml"
OCI_SCHEME = "oci://"


class Repository(ABC):
    """A source of release files for one provider."""

    def __init__(self, provider_type: ProviderType) -> None:
        """Initialize Repository."""
        self._provider_type = provider_type

    @property
    def components_path(self) -> str:
        """The release file that holds the provider components."""
        return self._provider_type.components_file

    @abstractmethod
    async def get_file(self, version: str, path: str) -> bytes:
        """Return the contents of a release file for the version."""


async def _read_file(path: Path) -> bytes:
    if not await isfile(path):
        raise RepositoryException(f"Release file does not exist: {path}")
    async with aiofiles.open(str(path), mode="rb") as release_file:
        return await release_file.read()


class LocalRepository(Repository):
    """A repository of releases in a local directory."""

    def __init__(self, root: Path, provider_type: ProviderType) -> None:
        """Initialize LocalRepository."""
        super().__init__(provider_type)
        self._root = root

    async def get_file(self, version: str, path: str) -> bytes:
        """Return the contents of a release file for the version."""
        file_path = self._root / version / path
        _LOGGER.debug("Reading %s", file_path)
        return await _read_file(file_path)

    def __str__(self) -> str:
        return str(self._root)


class OCIRepository(Repository):
    """A repository of releases published as OCI artifacts."""

    def __init__(
        self,
        url: str,
        provider_type: ProviderType,
        cache_dir: Path | None = None,
    ) -> None:
        """Initialize OCIRepository."""
        super().__init__(provider_type)
        self._url = url.removeprefix(OCI_SCHEME)
        self._cache_dir = cache_dir or (
            Path(tempfile.gettempdir()) / "capi-assets-cache"
        )
        self._pulled: dict[str, Path] = {}

    def _release_dir(self, version: str) -> Path:
        slug = slugify(
            f"{self._url}-{version}", max_length=80, lowercase=True, separator="-"
        )
        return self._cache_dir / slug

    def _pull(self, version: str) -> Path:
        if (release_dir := self._pulled.get(version)) is not None:
            return release_dir
        release_dir = self._release_dir(version)
        release_dir.mkdir(parents=True, exist_ok=True)
        target = f"{self._url}:{version}"
        _LOGGER.info("Pulling OCI artifact %s", target)
        client = OrasClient()
        try:
            res = client.pull(target=target, outdir=str(release_dir))
        except Exception as err:
            raise RepositoryException(
                f"Unable to pull OCI artifact {target}: {err}"
            ) from err
        _LOGGER.debug("Downloaded files: %s", res)
        self._pulled[version] = release_dir
        return release_dir

    async def get_file(self, version: str, path: str) -> bytes:
        """Return the contents of a release file for the version."""
        return await _read_file(self._pull(version) / path)

    def __str__(self) -> str:
        return f"{OCI_SCHEME}{self._url}"


async def read_provider_versions(path: Path) -> dict[str, str]:
    """Return the version catalog of provider name to version."""
    async with aiofiles.open(str(path), encoding="utf-8") as versions_file:
        content = await versions_file.read()
    try:
        versions = json.loads(content)
    except json.JSONDecodeError as err:
        raise InputException(f"Invalid provider versions file {path}: {err}") from err
    if not isinstance(versions, dict):
        raise InputException(
            f"Invalid provider versions file {path}: expected a mapping"
        )
    return {str(name): str(version) for name, version in versions.items()}
