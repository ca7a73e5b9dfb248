"""Translate cert-manager CA injection to the OpenShift service CA.

Upstream providers rely on cert-manager to issue serving certificates for
their webhooks and to inject the CA bundle into CRDs and webhook
configurations. On OpenShift the service CA operator does both: a Service
annotated with a secret name gets a serving certificate, and objects
annotated for injection get the CA bundle.

The rewrite happens in two steps. `resolve_service_secrets` follows each
injection annotation to its Certificate and the Secret it provisions, and
records which Service that Secret has to be issued for. `rewrite_ca_injection`
then swaps the annotations and drops the cert-manager objects.
"""

from dataclasses import dataclass
import logging

from .exceptions import (
    CertificateNotFoundError,
    InjectionReferenceError,
    IntegrityException,
    ManifestDecodeError,
)
from .manifest import (
    Certificate,
    CustomResourceDefinition,
    Kind,
    ManifestObject,
    WebhookConfiguration,
)

__all__ = [
    "InjectionReference",
    "injection_reference",
    "resolve_service_secrets",
    "rewrite_ca_injection",
]

_LOGGER = logging.getLogger(__name__)

INJECT_CA_FROM = "cert-manager.io/inject-ca-from"
INJECT_CABUNDLE = "service.beta.openshift.io/inject-cabundle"
SERVING_CERT_SECRET_NAME = "service.beta.openshift.io/serving-cert-secret-name"

# Kinds that may carry the injection annotation.
INJECTABLE_KINDS = (
    Kind.CUSTOM_RESOURCE_DEFINITION,
    Kind.MUTATING_WEBHOOK_CONFIGURATION,
    Kind.VALIDATING_WEBHOOK_CONFIGURATION,
)

# Kinds replaced by the service CA and the platform namespace lifecycle.
DROPPED_KINDS = (
    Kind.CERTIFICATE,
    Kind.ISSUER,
    Kind.NAMESPACE,
)


@dataclass(frozen=True)
class InjectionReference:
    """The Certificate named by a `cert-manager.io/inject-ca-from` annotation."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "InjectionReference":
        """Parse a `<namespace>/<certificate-name>` annotation value."""
        namespace, sep, name = value.partition("/")
        if not sep or not namespace or not name or "/" in name:
            raise InjectionReferenceError(
                f"Invalid {INJECT_CA_FROM} annotation '{value}', "
                "expected <namespace>/<certificate-name>"
            )
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def injection_reference(obj: ManifestObject) -> InjectionReference | None:
    """Return the Certificate the object injects a CA from, if any."""
    if (value := obj.annotations.get(INJECT_CA_FROM)) is None:
        return None
    if not isinstance(value, str):
        raise ManifestDecodeError(
            str(obj), f"expected a string for annotation {INJECT_CA_FROM}"
        )
    return InjectionReference.parse(value)


def _certificate_secrets(objects: list[ManifestObject]) -> dict[str, str]:
    """Map each Certificate name to the Secret it provisions."""
    secrets: dict[str, str] = {}
    for obj in objects:
        if obj.kind is not Kind.CERTIFICATE:
            continue
        if obj.name in secrets:
            raise IntegrityException(
                f"Duplicate Certificate name '{obj.name}' ({obj}), injection "
                "references can't be resolved unambiguously"
            )
        secrets[obj.name] = Certificate.parse_doc(obj).secret_name
    return secrets


def _injection_service(obj: ManifestObject) -> str:
    """Return the name of the Service fronting the webhook of an object."""
    if obj.kind is Kind.CUSTOM_RESOURCE_DEFINITION:
        return CustomResourceDefinition.parse_doc(obj).service_name(obj)
    return WebhookConfiguration.parse_doc(obj).service_name(obj)


def resolve_service_secrets(objects: list[ManifestObject]) -> dict[str, str]:
    """Return the serving certificate Secret name needed by each webhook Service.

    Certificates are matched by name only; the namespace in the injection
    reference is not used. Raises `CertificateNotFoundError` when an injection
    reference does not lead to a Secret.
    """
    cert_secrets = _certificate_secrets(objects)
    service_secrets: dict[str, str] = {}
    for obj in objects:
        if obj.kind not in INJECTABLE_KINDS:
            continue
        if (ref := injection_reference(obj)) is None:
            continue
        if not (secret_name := cert_secrets.get(ref.name)):
            raise CertificateNotFoundError(str(obj), str(ref))
        service_name = _injection_service(obj)
        _LOGGER.debug(
            "%s injects CA from %s, Service %s needs Secret %s",
            obj,
            ref,
            service_name,
            secret_name,
        )
        service_secrets[service_name] = secret_name
    return service_secrets


def rewrite_ca_injection(objects: list[ManifestObject]) -> list[ManifestObject]:
    """Replace cert-manager CA injection with service CA annotations.

    Certificates, Issuers and Namespaces are dropped from the result; all
    other objects are returned in their original order.
    """
    service_secrets = resolve_service_secrets(objects)

    result: list[ManifestObject] = []
    for obj in objects:
        kind = obj.kind
        if kind in INJECTABLE_KINDS:
            annotations = obj.annotations
            if INJECT_CA_FROM in annotations:
                annotations[INJECT_CABUNDLE] = "true"
                del annotations[INJECT_CA_FROM]
                obj.set_annotations(annotations)
            result.append(obj)
        elif kind is Kind.SERVICE:
            if (secret_name := service_secrets.get(obj.name)) is not None:
                _LOGGER.info("%s serving certificate Secret %s", obj, secret_name)
                annotations = obj.annotations
                annotations[SERVING_CERT_SECRET_NAME] = secret_name
                obj.set_annotations(annotations)
            result.append(obj)
        elif kind in DROPPED_KINDS:
            _LOGGER.debug("Dropping %s", obj)
        else:
            result.append(obj)
    return result
