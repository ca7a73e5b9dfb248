"""Exceptions related to capi-assets."""

__all__ = [
    "AssetsException",
    "InputException",
    "ManifestDecodeError",
    "RepositoryException",
    "IntegrityException",
    "CertificateNotFoundError",
    "InjectionReferenceError",
]


class AssetsException(Exception):
    """Generic base exception used for this library."""


class InputException(AssetsException):
    """Raised when the input files or values are not formatted as expected."""


class ManifestDecodeError(InputException):
    """Raised when an object does not decode into the shape expected for its kind."""

    def __init__(self, resource: str, message: str) -> None:
        super().__init__(f"Unable to decode {resource}: {message}")
        self.resource = resource


class RepositoryException(AssetsException):
    """Raised when a file can't be fetched from a provider repository."""


class IntegrityException(AssetsException):
    """Raised when objects reference each other in a way that can't be resolved.

    Continuing past one of these would produce a manifest that installs but
    does not work, so the whole run is aborted.
    """


class CertificateNotFoundError(IntegrityException):
    """Raised when a CA injection annotation points at an unknown Certificate."""

    def __init__(self, resource: str, reference: str) -> None:
        super().__init__(
            f"{resource} injects CA from '{reference}' but no Certificate "
            "with a secretName matches"
        )
        self.resource = resource
        self.reference = reference


class InjectionReferenceError(IntegrityException):
    """Raised for a CA injection annotation not of the form `namespace/name`."""
