"""Identity of a Cluster API provider being imported."""

from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "ProviderType",
    "ProviderContext",
]

# Labels used by the cluster-api-operator to find the components ConfigMap.
NAME_LABEL = "provider.cluster.x-k8s.io/name"
TYPE_LABEL = "provider.cluster.x-k8s.io/type"
VERSION_LABEL = "provider.cluster.x-k8s.io/version"


class ProviderType(StrEnum):
    """The type of a Cluster API provider."""

    CORE = "core"
    CONTROL_PLANE = "controlplane"
    BOOTSTRAP = "bootstrap"
    INFRASTRUCTURE = "infrastructure"

    @property
    def kind(self) -> str:
        """The operator resource kind that activates a provider of this type."""
        return {
            ProviderType.CORE: "CoreProvider",
            ProviderType.CONTROL_PLANE: "ControlPlaneProvider",
            ProviderType.BOOTSTRAP: "BootstrapProvider",
            ProviderType.INFRASTRUCTURE: "InfrastructureProvider",
        }[self]

    @property
    def components_file(self) -> str:
        """The file name a provider of this type publishes its components in."""
        if self is ProviderType.CONTROL_PLANE:
            return "control-plane-components.yaml"
        return f"{self.value}-components.yaml"

    def manifest_label(self, name: str) -> str:
        """The clusterctl label identifying objects of the named provider."""
        if self is ProviderType.CORE:
            return "cluster-api"
        if self is ProviderType.CONTROL_PLANE:
            return f"control-plane-{name}"
        return f"{self.value}-{name}"


@dataclass(frozen=True)
class ProviderContext:
    """The provider being processed by one pipeline run."""

    name: str
    """The provider name e.g. `aws`."""

    type: ProviderType
    """The provider type."""

    version: str
    """The resolved version being imported."""

    @property
    def type_name(self) -> str:
        return self.type.value

    @property
    def manifest_label(self) -> str:
        return self.type.manifest_label(self.name)

    @property
    def image_prefix(self) -> str:
        """The prefix of image catalog keys owned by this provider."""
        return f"{self.type_name}-{self.name}"

    @property
    def artifact_name(self) -> str:
        """The name of the ConfigMap holding the packaged components."""
        return f"{self.name}-{self.version}"

    @property
    def selector_labels(self) -> dict[str, str]:
        """Labels the activation record uses to find the packaged components."""
        return {
            NAME_LABEL: self.name,
            TYPE_LABEL: self.type_name,
        }

    @property
    def artifact_labels(self) -> dict[str, str]:
        return {
            **self.selector_labels,
            VERSION_LABEL: self.version,
        }

    @property
    def artifact_filename(self) -> str:
        return f"{self.type_name}-{self.name}.yaml".lower()

    @property
    def activation_filename(self) -> str:
        return f"{self.type_name}-{self.name}-provider.yaml".lower()

    @property
    def rbac_filename(self) -> str:
        return f"0000_30_cluster-api-{self.type_name}-{self.name}_03_rbac.yaml".lower()

    def __str__(self) -> str:
        return f"{self.type_name}/{self.name}@{self.version}"
