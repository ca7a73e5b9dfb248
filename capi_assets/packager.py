"""Package provider components for the cluster-api-operator.

The operator discovers provider components through a ConfigMap labelled with
the provider name, type and version. The activation record (a CoreProvider,
InfrastructureProvider, etc.) selects that ConfigMap by name and type and pins
the version to install.
"""

from dataclasses import dataclass
import logging
from typing import Any

from .exceptions import InputException
from .manifest import ManifestObject, dump_object, dump_objects, ensure_newline
from .provider import ProviderContext

__all__ = [
    "OPERATOR_API_VERSION",
    "PackagedProvider",
    "build_artifact",
    "build_activation",
    "package_provider",
    "render_rbac",
]

_LOGGER = logging.getLogger(__name__)

OPERATOR_API_VERSION = "operator.cluster.x-k8s.io/v1alpha1"


@dataclass(frozen=True)
class PackagedProvider:
    """The rendered outputs for one provider."""

    artifact: dict[str, Any]
    """The ConfigMap holding metadata and components."""

    activation: dict[str, Any]
    """The operator resource that activates the provider."""

    @property
    def artifact_yaml(self) -> str:
        return ensure_newline(dump_object(self.artifact))

    @property
    def activation_yaml(self) -> str:
        return ensure_newline(dump_object(self.activation))


def build_artifact(
    components: str, metadata: str, context: ProviderContext, namespace: str
) -> dict[str, Any]:
    """Return the ConfigMap holding the serialized provider components."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": context.artifact_name,
            "namespace": namespace,
            "labels": context.artifact_labels,
        },
        "data": {
            "metadata": metadata,
            "components": components,
        },
    }


def build_activation(context: ProviderContext, namespace: str) -> dict[str, Any]:
    """Return the operator resource that installs the packaged components."""
    return {
        "apiVersion": OPERATOR_API_VERSION,
        "kind": context.type.kind,
        "metadata": {
            "name": context.name,
            "namespace": namespace,
        },
        "spec": {
            "version": context.version,
            "fetchConfig": {
                "selector": {
                    "matchLabels": context.selector_labels,
                },
            },
        },
    }


def package_provider(
    objects: list[ManifestObject],
    context: ProviderContext,
    metadata: bytes,
    namespace: str,
) -> PackagedProvider:
    """Package the final object stream for a provider."""
    _LOGGER.debug("Packaging %d objects for %s", len(objects), context)
    try:
        metadata_text = metadata.decode("utf-8")
    except UnicodeDecodeError as err:
        raise InputException(
            f"Invalid metadata of provider {context.name}, expected UTF-8: {err}"
        ) from err
    components = dump_objects(objects)
    return PackagedProvider(
        artifact=build_artifact(components, metadata_text, context, namespace),
        activation=build_activation(context, namespace),
    )


def render_rbac(objects: list[ManifestObject]) -> str:
    """Serialize the RBAC stream for staging as a platform manifest."""
    return ensure_newline(dump_objects(objects))
