"""Remove unwanted sub-components from a provider."""

from collections.abc import Callable
import logging

from .manifest import Kind, ManifestObject

__all__ = [
    "Predicate",
    "name_contains",
    "filter_components",
]

_LOGGER = logging.getLogger(__name__)

Predicate = Callable[[ManifestObject], bool]


def name_contains(*substrings: str) -> Predicate:
    """Return a predicate matching objects whose lower case name contains any substring."""
    needles = [value.lower() for value in substrings]

    def func(obj: ManifestObject) -> bool:
        name = obj.name.lower()
        return any(needle in name for needle in needles)

    return func


def filter_components(
    objects: list[ManifestObject], exclude: Predicate
) -> list[ManifestObject]:
    """Drop objects matched by `exclude`.

    CustomResourceDefinitions are always kept so the API stays available even
    when the controller serving it is excluded.
    """
    result: list[ManifestObject] = []
    for obj in objects:
        if obj.kind is Kind.CUSTOM_RESOURCE_DEFINITION or not exclude(obj):
            result.append(obj)
        else:
            _LOGGER.debug("Excluding component %s", obj)
    return result
