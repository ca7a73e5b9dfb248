"""Split RBAC objects out of the provider components.

RBAC has to be applied by the platform before the provider payload so it is
staged as a separate manifest instead of travelling inside the components
ConfigMap.
"""

from collections.abc import Callable
import logging

from .manifest import Kind, ManifestObject

__all__ = [
    "RBAC_KINDS",
    "PLATFORM_ANNOTATIONS",
    "set_platform_annotations",
    "partition_rbac",
]

_LOGGER = logging.getLogger(__name__)

RBAC_KINDS = (
    Kind.CLUSTER_ROLE,
    Kind.ROLE,
    Kind.CLUSTER_ROLE_BINDING,
    Kind.ROLE_BINDING,
    Kind.SERVICE_ACCOUNT,
)

# Release inclusion annotations for manifests installed by the platform.
PLATFORM_ANNOTATIONS = {
    "exclude.release.openshift.io/internal-openshift-hosted": "true",
    "include.release.openshift.io/self-managed-high-availability": "true",
    "include.release.openshift.io/single-node-developer": "true",
    "release.openshift.io/feature-set": "TechPreviewNoUpgrade",
}

Annotator = Callable[[ManifestObject], None]


def set_platform_annotations(
    obj: ManifestObject, annotations: dict[str, str], merge: bool = False
) -> None:
    """Apply the platform annotations to an object.

    Without `merge` any existing annotations are replaced.
    """
    result = obj.annotations if merge else {}
    result.update(annotations)
    obj.set_annotations(result)


def platform_annotator(annotations: dict[str, str] | None = None) -> Annotator:
    """Return an annotation pass that replaces annotations with the given set."""
    values = dict(PLATFORM_ANNOTATIONS if annotations is None else annotations)

    def annotate(obj: ManifestObject) -> None:
        set_platform_annotations(obj, values, merge=False)

    return annotate


def partition_rbac(
    objects: list[ManifestObject], annotator: Annotator | None = None
) -> tuple[list[ManifestObject], list[ManifestObject]]:
    """Return the non-RBAC objects and the annotated RBAC objects."""
    if annotator is None:
        annotator = platform_annotator()
    core: list[ManifestObject] = []
    rbac: list[ManifestObject] = []
    for obj in objects:
        if obj.kind in RBAC_KINDS:
            annotator(obj)
            rbac.append(obj)
        else:
            core.append(obj)
    _LOGGER.debug("Split %d RBAC objects from %d objects", len(rbac), len(objects))
    return core, rbac
