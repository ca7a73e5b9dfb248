"""Configuration objects for capi-assets."""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import cast

import aiofiles
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from .exceptions import InputException
from .filters import Predicate, name_contains
from .provider import ProviderType
from .rbac import PLATFORM_ANNOTATIONS
from .repository import OCI_SCHEME, LocalRepository, OCIRepository, Repository

__all__ = [
    "ProviderConfig",
    "ImportConfig",
    "read_config",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_TARGET_NAMESPACE = "openshift-cluster-api"


@dataclass
class ProviderConfig(DataClassDictMixin):
    """A provider to import."""

    name: str
    """The provider name, also used to look up its version."""

    type: ProviderType
    """The provider type."""

    url: str | None = None
    """A local repository directory or an `oci://` reference."""

    exclude_components: list[str] = field(default_factory=list)
    """Objects whose name contains any of these are dropped, except CRDs."""

    def repository(self, root: Path, repository_dir: str) -> Repository:
        """Return the repository publishing this provider's releases."""
        if self.url and self.url.startswith(OCI_SCHEME):
            return OCIRepository(self.url, self.type)
        if self.url:
            return LocalRepository(root / self.url, self.type)
        return LocalRepository(
            root / repository_dir / self.type.manifest_label(self.name), self.type
        )

    def exclude_predicate(self) -> Predicate | None:
        """Return the filter for excluded components, if any."""
        if not self.exclude_components:
            return None
        return name_contains(*self.exclude_components)

    class Config(BaseConfig):
        omit_none = True


def _default_providers() -> list[ProviderConfig]:
    return [
        ProviderConfig(name="cluster-api", type=ProviderType.CORE),
        ProviderConfig(name="aws", type=ProviderType.INFRASTRUCTURE),
        ProviderConfig(name="azure", type=ProviderType.INFRASTRUCTURE),
        ProviderConfig(
            name="metal3",
            type=ProviderType.INFRASTRUCTURE,
            exclude_components=["ipam"],
        ),
        ProviderConfig(name="gcp", type=ProviderType.INFRASTRUCTURE),
        ProviderConfig(name="openstack", type=ProviderType.INFRASTRUCTURE),
    ]


@dataclass
class ImportConfig(DataClassDictMixin):
    """Settings for importing providers.

    Paths are relative to the root directory of the import.
    """

    target_namespace: str = DEFAULT_TARGET_NAMESPACE
    """The namespace provider components are installed into."""

    providers_dir: str = "assets/providers"
    """Where the packaged components and activation records are written."""

    manifests_dir: str = "manifests"
    """Where the RBAC manifests are written."""

    repository_dir: str = "repository"
    """The local repository used for providers without a url."""

    versions_file: str = "provider-versions.json"
    """The catalog of provider name to version to import."""

    images_file: str = "sample-images.json"
    """The image catalog updated with the images of every provider."""

    rbac_annotations: dict[str, str] = field(
        default_factory=lambda: dict(PLATFORM_ANNOTATIONS)
    )
    """Annotations set on RBAC objects staged as platform manifests."""

    providers: list[ProviderConfig] = field(default_factory=_default_providers)
    """The providers to import, in order."""

    def provider(self, name: str) -> ProviderConfig:
        """Return the configuration of the named provider."""
        for provider in self.providers:
            if provider.name == name:
                return provider
        raise InputException(
            f"Unknown provider '{name}', expected one of: "
            f"{', '.join(p.name for p in self.providers)}"
        )


async def read_config(config_path: Path) -> ImportConfig:
    """Return the import configuration from a YAML file."""
    async with aiofiles.open(str(config_path)) as config_file:
        content = await config_file.read()
    if not content.strip():
        raise InputException(f"Configuration file {config_path} is empty")
    try:
        return cast(ImportConfig, yaml_decode(content, ImportConfig))
    except (
        MissingField,
        InvalidFieldValue,
        ValueError,
        TypeError,
        yaml.YAMLError,
    ) as err:
        raise InputException(f"Invalid configuration {config_path}: {err}") from err
