"""Load the published components of a provider.

This mirrors what clusterctl does when it reads a components file with
template processing skipped: every namespaced object is moved into the target
namespace, references to the provider's own namespace are re-pointed, and all
objects are labelled with the provider they belong to.
"""

import logging
from typing import Any

from .certificates import INJECT_CA_FROM, injection_reference
from .manifest import (
    Kind,
    ManifestObject,
    expect_mapping,
    expect_mappings,
    parse_objects,
)
from .provider import ProviderContext

__all__ = [
    "PROVIDER_LABEL",
    "CLUSTERCTL_LABEL",
    "load_components",
]

_LOGGER = logging.getLogger(__name__)

PROVIDER_LABEL = "cluster.x-k8s.io/provider"
CLUSTERCTL_LABEL = "clusterctl.cluster.x-k8s.io"

# Kinds that exist outside of any namespace.
CLUSTER_SCOPED_KINDS = {
    "Namespace",
    "CustomResourceDefinition",
    "ClusterRole",
    "ClusterRoleBinding",
    "MutatingWebhookConfiguration",
    "ValidatingWebhookConfiguration",
    "APIService",
    "PriorityClass",
    "StorageClass",
    "ClusterIssuer",
}


def _update_service_namespace(
    obj: ManifestObject, client_config: Any, path: str, namespace: str
) -> None:
    if client_config is None:
        return
    client_config = expect_mapping(obj, client_config, path)
    if (service := client_config.get("service")) is not None:
        expect_mapping(obj, service, f"{path}.service")["namespace"] = namespace


def _update_references(obj: ManifestObject, namespace: str) -> None:
    """Point references to objects of the provider at the target namespace."""
    kind = obj.kind
    if kind in (Kind.CLUSTER_ROLE_BINDING, Kind.ROLE_BINDING):
        for subject in expect_mappings(obj, obj.doc.get("subjects"), "subjects"):
            if subject.get("kind") == "ServiceAccount":
                subject["namespace"] = namespace
    elif kind in (
        Kind.MUTATING_WEBHOOK_CONFIGURATION,
        Kind.VALIDATING_WEBHOOK_CONFIGURATION,
    ):
        webhooks = expect_mappings(obj, obj.doc.get("webhooks"), "webhooks")
        for i, webhook in enumerate(webhooks):
            _update_service_namespace(
                obj,
                webhook.get("clientConfig"),
                f"webhooks[{i}].clientConfig",
                namespace,
            )
    elif kind is Kind.CUSTOM_RESOURCE_DEFINITION:
        spec = expect_mapping(obj, obj.doc.get("spec") or {}, "spec")
        conversion = expect_mapping(
            obj, spec.get("conversion") or {}, "spec.conversion"
        )
        webhook = expect_mapping(
            obj, conversion.get("webhook") or {}, "spec.conversion.webhook"
        )
        _update_service_namespace(
            obj,
            webhook.get("clientConfig"),
            "spec.conversion.webhook.clientConfig",
            namespace,
        )

    if (ref := injection_reference(obj)) is not None:
        annotations = obj.annotations
        annotations[INJECT_CA_FROM] = f"{namespace}/{ref.name}"
        obj.set_annotations(annotations)


def _fix_target_namespace(obj: ManifestObject, namespace: str) -> None:
    if obj.kind is Kind.NAMESPACE:
        obj.metadata["name"] = namespace
    elif obj.kind_name not in CLUSTER_SCOPED_KINDS:
        obj.namespace = namespace
    _update_references(obj, namespace)


def _add_common_labels(obj: ManifestObject, context: ProviderContext) -> None:
    labels = obj.labels
    labels[PROVIDER_LABEL] = context.manifest_label
    labels[CLUSTERCTL_LABEL] = ""
    obj.set_labels(labels)


def load_components(
    raw: bytes | str, context: ProviderContext, target_namespace: str
) -> list[ManifestObject]:
    """Parse a components file into objects ready for the pipeline."""
    objects = parse_objects(raw)
    for obj in objects:
        _fix_target_namespace(obj, target_namespace)
        _add_common_labels(obj, context)
    _LOGGER.debug(
        "Loaded %d objects for %s into namespace %s",
        len(objects),
        context,
        target_namespace,
    )
    return objects
