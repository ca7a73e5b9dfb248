"""Tests for the import configuration."""

from pathlib import Path

import pytest

from capi_assets.config import ImportConfig, ProviderConfig, read_config
from capi_assets.exceptions import InputException
from capi_assets.provider import ProviderType
from capi_assets.rbac import PLATFORM_ANNOTATIONS
from capi_assets.repository import LocalRepository, OCIRepository

from .conftest import TESTDATA, make_object


def test_defaults() -> None:
    """Test the built-in configuration."""
    config = ImportConfig()
    assert config.target_namespace == "openshift-cluster-api"
    assert config.rbac_annotations == PLATFORM_ANNOTATIONS
    assert [provider.name for provider in config.providers] == [
        "cluster-api",
        "aws",
        "azure",
        "metal3",
        "gcp",
        "openstack",
    ]
    assert config.provider("cluster-api").type is ProviderType.CORE
    assert config.provider("metal3").exclude_components == ["ipam"]


def test_defaults_not_shared() -> None:
    """Test mutable defaults are independent between instances."""
    config = ImportConfig()
    config.rbac_annotations["extra"] = "true"
    config.providers.pop()
    assert "extra" not in ImportConfig().rbac_annotations
    assert len(ImportConfig().providers) == 6
    assert "extra" not in PLATFORM_ANNOTATIONS


def test_unknown_provider() -> None:
    with pytest.raises(InputException, match="Unknown provider 'vsphere'"):
        ImportConfig().provider("vsphere")


async def test_read_config() -> None:
    """Test reading a configuration file."""
    config = await read_config(TESTDATA / "config.yaml")
    assert config.target_namespace == "openshift-cluster-api"
    assert config.providers == [
        ProviderConfig(name="cluster-api", type=ProviderType.CORE),
        ProviderConfig(
            name="metal3",
            type=ProviderType.INFRASTRUCTURE,
            exclude_components=["ipam"],
        ),
        ProviderConfig(name="broken", type=ProviderType.INFRASTRUCTURE),
    ]
    assert config.images_file == "sample-images.json"


async def test_read_empty_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("\n")
    with pytest.raises(InputException, match="is empty"):
        await read_config(path)


@pytest.mark.parametrize(
    "content",
    [
        "providers:\n  - name: aws\n    type: provisioner\n",
        "providers:\n  - type: core\n",
        "providers: [\n",
    ],
)
async def test_read_invalid_config(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    with pytest.raises(InputException, match="Invalid configuration"):
        await read_config(path)


def test_repository_selection(tmp_path: Path) -> None:
    """Test the repository used for each kind of provider url."""
    default = ProviderConfig(name="aws", type=ProviderType.INFRASTRUCTURE)
    repo = default.repository(tmp_path, "repository")
    assert isinstance(repo, LocalRepository)
    assert str(repo) == str(tmp_path / "repository" / "infrastructure-aws")

    core = ProviderConfig(name="cluster-api", type=ProviderType.CORE)
    assert str(core.repository(tmp_path, "repository")) == str(
        tmp_path / "repository" / "cluster-api"
    )

    local = ProviderConfig(
        name="aws", type=ProviderType.INFRASTRUCTURE, url="vendor/aws"
    )
    assert str(local.repository(tmp_path, "repository")) == str(
        tmp_path / "vendor" / "aws"
    )

    oci = ProviderConfig(
        name="aws",
        type=ProviderType.INFRASTRUCTURE,
        url="oci://ghcr.io/example/aws",
    )
    repo = oci.repository(tmp_path, "repository")
    assert isinstance(repo, OCIRepository)
    assert str(repo) == "oci://ghcr.io/example/aws"


def test_exclude_predicate() -> None:
    assert ProviderConfig(name="aws", type=ProviderType.INFRASTRUCTURE).exclude_predicate() is None
    predicate = ProviderConfig(
        name="metal3", type=ProviderType.INFRASTRUCTURE, exclude_components=["ipam"]
    ).exclude_predicate()
    assert predicate is not None
    assert predicate(make_object("Deployment", "ipam-controller-manager"))
