"""Helper functions for working with container images.

Every image used by a provider controller is recorded in an image catalog
under a stable key. The key does not change when the provider bumps its
version, so the platform can substitute its own builds of the same images by
key without knowing about upstream registries or tags.
"""

import json
import logging
from pathlib import Path

import aiofiles

from .exceptions import InputException
from .manifest import Deployment, Kind, ManifestObject
from .provider import ProviderContext

__all__ = [
    "image_name",
    "image_to_key",
    "derive_image_keys",
    "merge_image_catalog",
    "read_image_catalog",
    "dump_image_catalog",
]

_LOGGER = logging.getLogger(__name__)

# Sidecar shared by every provider, all of them use a single catalog entry.
KUBE_RBAC_PROXY = "kube-rbac-proxy"

# Provider controllers that get their own entry next to the main manager.
EXTRA_CONTROLLERS = {"ip-address-manager"}

MANAGER = "manager"


def image_name(image: str) -> str:
    """Return the bare image name without registry, repository, tag or digest.

    e.g. `registry.k8s.io/cluster-api/cluster-api-controller:v1.5.0` becomes
    `cluster-api-controller`.
    """
    name = image.rsplit("/", 1)[-1]
    name = name.split("@", 1)[0]
    return name.split(":", 1)[0]


def image_to_key(context: ProviderContext, image: str) -> str:
    """Return the image catalog key for an image used by the provider."""
    name = image_name(image)
    if name == KUBE_RBAC_PROXY:
        return KUBE_RBAC_PROXY
    if name in EXTRA_CONTROLLERS:
        return f"{context.image_prefix}:{name}"
    return f"{context.image_prefix}:{MANAGER}"


def derive_image_keys(
    objects: list[ManifestObject], context: ProviderContext
) -> dict[str, str]:
    """Return the catalog keys for the images of every Deployment container."""
    images: dict[str, str] = {}
    for obj in objects:
        if obj.kind is not Kind.DEPLOYMENT:
            continue
        for container in Deployment.parse_doc(obj).containers:
            key = image_to_key(context, container.image)
            _LOGGER.debug(
                "%s container %s image %s -> %s",
                obj,
                container.name,
                container.image,
                key,
            )
            images[key] = container.image
    return images


def merge_image_catalog(
    catalog: dict[str, str], images: dict[str, str]
) -> dict[str, str]:
    """Return a new catalog with the images added or updated.

    Keys are never removed so entries accumulate across providers and runs.
    """
    result = dict(catalog)
    for key, image in images.items():
        if (previous := result.get(key)) is not None and previous != image:
            _LOGGER.info("Updating image %s: %s -> %s", key, previous, image)
        result[key] = image
    return result


def dump_image_catalog(catalog: dict[str, str]) -> str:
    """Serialize the catalog in a stable order."""
    return json.dumps(catalog, indent=2, sort_keys=True) + "\n"


async def read_image_catalog(path: Path) -> dict[str, str]:
    """Return the contents of an image catalog file."""
    async with aiofiles.open(str(path), encoding="utf-8") as catalog_file:
        content = await catalog_file.read()
    try:
        catalog = json.loads(content)
    except json.JSONDecodeError as err:
        raise InputException(f"Invalid image catalog {path}: {err}") from err
    if not isinstance(catalog, dict) or not all(
        isinstance(value, str) for value in catalog.values()
    ):
        raise InputException(
            f"Invalid image catalog {path}: expected a mapping of key to image"
        )
    return catalog

