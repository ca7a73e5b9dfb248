"""Representation of the Kubernetes objects that make up a provider.

Provider components are kept as the raw decoded YAML documents so that any
field the pipeline does not know about is carried through untouched. The few
kinds the pipeline needs to look inside of are decoded on demand into typed
payloads, and an object that claims one of those kinds but does not have the
expected shape is rejected rather than skipped.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from .exceptions import InputException, ManifestDecodeError

__all__ = [
    "Kind",
    "NamedResource",
    "ManifestObject",
    "Certificate",
    "CustomResourceDefinition",
    "WebhookConfiguration",
    "Deployment",
    "expect_mapping",
    "expect_mappings",
    "parse_objects",
    "dump_objects",
    "dump_documents",
    "dump_object",
    "ensure_newline",
]

_LOGGER = logging.getLogger(__name__)


class Kind(StrEnum):
    """The kinds of objects the pipeline treats specially.

    Anything else classifies as OTHER and is passed through by every stage.
    """

    CERTIFICATE = "Certificate"
    ISSUER = "Issuer"
    NAMESPACE = "Namespace"
    CUSTOM_RESOURCE_DEFINITION = "CustomResourceDefinition"
    MUTATING_WEBHOOK_CONFIGURATION = "MutatingWebhookConfiguration"
    VALIDATING_WEBHOOK_CONFIGURATION = "ValidatingWebhookConfiguration"
    SERVICE = "Service"
    DEPLOYMENT = "Deployment"
    CLUSTER_ROLE = "ClusterRole"
    ROLE = "Role"
    CLUSTER_ROLE_BINDING = "ClusterRoleBinding"
    ROLE_BINDING = "RoleBinding"
    SERVICE_ACCOUNT = "ServiceAccount"
    OTHER = "Other"

    @classmethod
    def of(cls, kind: str) -> "Kind":
        """Classify a raw kind string."""
        try:
            return cls(kind)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ManifestObject:
    """A single kubernetes object without a fixed schema."""

    doc: dict[str, Any]
    """The raw kubernetes object, mutated in place by the pipeline."""

    @classmethod
    def parse_doc(cls, doc: Any) -> "ManifestObject":
        """Wrap a raw kubernetes object after checking the identifying fields."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid object expected a mapping: {doc}")
        if not doc.get("kind"):
            raise InputException(f"Invalid object missing kind: {doc}")
        if not isinstance(metadata := doc.get("metadata"), dict):
            raise InputException(f"Invalid object missing metadata: {doc}")
        if not metadata.get("name"):
            raise InputException(f"Invalid object missing metadata.name: {doc}")
        for key in ("annotations", "labels"):
            if not isinstance(metadata.get(key) or {}, dict):
                raise InputException(
                    f"Invalid object expected a mapping for metadata.{key}: {doc}"
                )
        return cls(doc=doc)

    @property
    def kind_name(self) -> str:
        """The kind exactly as written in the object."""
        return str(self.doc["kind"])

    @property
    def kind(self) -> Kind:
        """The classified kind used for dispatch."""
        return Kind.of(self.kind_name)

    @property
    def api_version(self) -> str | None:
        return self.doc.get("apiVersion")

    @property
    def metadata(self) -> dict[str, Any]:
        return self.doc["metadata"]

    @property
    def name(self) -> str:
        return str(self.metadata["name"])

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace")

    @namespace.setter
    def namespace(self, namespace: str) -> None:
        self.metadata["namespace"] = namespace

    @property
    def annotations(self) -> dict[str, str]:
        """Return a copy of the annotations, see `set_annotations` to update."""
        return dict(self.metadata.get("annotations") or {})

    def set_annotations(self, annotations: dict[str, str]) -> None:
        """Replace the annotations, removing the field entirely when empty."""
        if annotations:
            self.metadata["annotations"] = annotations
        else:
            self.metadata.pop("annotations", None)

    @property
    def labels(self) -> dict[str, str]:
        """Return a copy of the labels, see `set_labels` to update."""
        return dict(self.metadata.get("labels") or {})

    def set_labels(self, labels: dict[str, str]) -> None:
        """Replace the labels, removing the field entirely when empty."""
        if labels:
            self.metadata["labels"] = labels
        else:
            self.metadata.pop("labels", None)

    @property
    def resource(self) -> NamedResource:
        """The identity of the object."""
        return NamedResource(
            kind=self.kind_name, namespace=self.namespace, name=self.name
        )

    def __str__(self) -> str:
        return str(self.resource)


@dataclass
class Payload(DataClassDictMixin):
    """Base class for the typed views of an object."""

    class Config(BaseConfig):
        omit_none = True


def expect_mapping(obj: ManifestObject, value: Any, path: str) -> dict[str, Any]:
    """Return the value of a field that must be a mapping."""
    if not isinstance(value, dict):
        raise ManifestDecodeError(str(obj), f"expected a mapping for {path}")
    return value


def expect_mappings(
    obj: ManifestObject, value: Any, path: str
) -> list[dict[str, Any]]:
    """Return the value of an optional field that must be a list of mappings."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestDecodeError(str(obj), f"expected a list for {path}")
    return [expect_mapping(obj, item, f"{path}[{i}]") for i, item in enumerate(value)]


def _section(obj: ManifestObject, *path: str) -> dict[str, Any]:
    """Return a nested mapping of the object, failing if any step is missing."""
    value: Any = obj.doc
    for i, key in enumerate(path):
        field_path = ".".join(path[: i + 1])
        if (value := value.get(key)) is None:
            raise ManifestDecodeError(str(obj), f"missing field {field_path}")
        expect_mapping(obj, value, field_path)
    return value


def _decode(obj: ManifestObject, cls: type[Any], value: Any) -> Any:
    """Decode a section of the object into a typed payload."""
    if not isinstance(value, dict):
        raise ManifestDecodeError(str(obj), f"expected a mapping for {cls.__name__}")
    try:
        return cls.from_dict(value)
    except (MissingField, InvalidFieldValue) as err:
        raise ManifestDecodeError(str(obj), str(err)) from err


def _check_kind(obj: ManifestObject, *kinds: Kind) -> None:
    if obj.kind not in kinds:
        raise ManifestDecodeError(
            str(obj), f"expected kind {' or '.join(kinds)}, got {obj.kind_name}"
        )


@dataclass
class ServiceReference(Payload):
    """A reference to the Service fronting a webhook."""

    name: str
    """The name of the Service."""

    namespace: str | None = None
    """The namespace of the Service."""

    path: str | None = None
    """The URL path used when calling the Service."""

    port: int | None = None
    """The port used when calling the Service."""


@dataclass
class WebhookClientConfig(Payload):
    """How the API server connects to a webhook."""

    service: ServiceReference | None = None
    """The Service used to reach the webhook."""

    url: str | None = None
    """An external URL used instead of a Service."""


@dataclass
class Webhook(Payload):
    """A single admission webhook entry."""

    name: str
    """The name of the webhook."""

    client_config: WebhookClientConfig = field(
        metadata=field_options(alias="clientConfig")
    )
    """The connection details for the webhook."""


def _service_name(obj: ManifestObject, client_config: WebhookClientConfig) -> str:
    if client_config.service is None:
        raise ManifestDecodeError(str(obj), "webhook clientConfig has no service")
    return client_config.service.name


@dataclass
class Certificate(Payload):
    """The spec of a cert-manager Certificate."""

    secret_name: str = field(metadata=field_options(alias="secretName"))
    """The Secret the issued certificate is stored in."""

    dns_names: list[str] = field(
        metadata=field_options(alias="dnsNames"), default_factory=list
    )
    """The DNS names the certificate is issued for."""

    @classmethod
    def parse_doc(cls, obj: ManifestObject) -> "Certificate":
        """Parse the Certificate spec from an object."""
        _check_kind(obj, Kind.CERTIFICATE)
        return _decode(obj, cls, _section(obj, "spec"))


@dataclass
class CustomResourceDefinition(Payload):
    """The conversion webhook settings of a CustomResourceDefinition."""

    strategy: str
    """The conversion strategy, `None` or `Webhook`."""

    client_config: WebhookClientConfig | None = None
    """The connection details of the conversion webhook."""

    @classmethod
    def parse_doc(cls, obj: ManifestObject) -> "CustomResourceDefinition":
        """Parse the conversion settings from a CustomResourceDefinition."""
        _check_kind(obj, Kind.CUSTOM_RESOURCE_DEFINITION)
        conversion = _section(obj, "spec", "conversion")
        client_config: WebhookClientConfig | None = None
        if (webhook := conversion.get("webhook")) is not None:
            webhook = expect_mapping(obj, webhook, "spec.conversion.webhook")
            if (config := webhook.get("clientConfig")) is not None:
                client_config = _decode(obj, WebhookClientConfig, config)
        return cls(
            strategy=conversion.get("strategy", "None"), client_config=client_config
        )

    def service_name(self, obj: ManifestObject) -> str:
        """Return the name of the Service serving the conversion webhook."""
        if self.client_config is None:
            raise ManifestDecodeError(
                str(obj), "missing field spec.conversion.webhook.clientConfig"
            )
        return _service_name(obj, self.client_config)


@dataclass
class WebhookConfiguration(Payload):
    """A MutatingWebhookConfiguration or ValidatingWebhookConfiguration."""

    webhooks: list[Webhook] = field(default_factory=list)
    """The webhooks in the configuration."""

    @classmethod
    def parse_doc(cls, obj: ManifestObject) -> "WebhookConfiguration":
        """Parse a webhook configuration object."""
        _check_kind(
            obj,
            Kind.MUTATING_WEBHOOK_CONFIGURATION,
            Kind.VALIDATING_WEBHOOK_CONFIGURATION,
        )
        webhooks = expect_mappings(obj, obj.doc.get("webhooks"), "webhooks")
        return _decode(obj, cls, {"webhooks": webhooks})

    def service_name(self, obj: ManifestObject) -> str:
        """Return the name of the Service serving the first webhook."""
        if not self.webhooks:
            raise ManifestDecodeError(str(obj), "no webhooks defined")
        return _service_name(obj, self.webhooks[0].client_config)


@dataclass
class Container(Payload):
    """A container in a pod template."""

    name: str
    """The name of the container."""

    image: str
    """The container image reference."""


@dataclass
class Deployment(Payload):
    """The containers of a Deployment pod template."""

    containers: list[Container]
    """The containers of the pod template."""

    @classmethod
    def parse_doc(cls, obj: ManifestObject) -> "Deployment":
        """Parse the pod template containers from a Deployment."""
        _check_kind(obj, Kind.DEPLOYMENT)
        pod_spec = _section(obj, "spec", "template", "spec")
        containers = expect_mappings(
            obj, pod_spec.get("containers"), "spec.template.spec.containers"
        )
        return _decode(obj, cls, {"containers": containers})


class _Dumper(yaml.SafeDumper):
    """Dumper that writes multi-line strings as literal blocks."""


def _str_presenter(dumper: yaml.SafeDumper, data: Any) -> Any:
    """Represent multi-line yaml strings as you'd expect.

    See https://github.com/yaml/pyyaml/issues/240
    """
    return dumper.represent_scalar(
        "tag:yaml.org,2002:str", data, style="|" if data.count("\n") > 0 else None
    )


_Dumper.add_representer(str, _str_presenter)


def parse_objects(content: str | bytes) -> list[ManifestObject]:
    """Parse a multi-document YAML stream, skipping empty documents."""
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse YAML documents: {err}") from err
    return [ManifestObject.parse_doc(doc) for doc in docs if doc is not None]


def dump_objects(objects: list[ManifestObject]) -> str:
    """Serialize objects as a multi-document YAML stream in their current order."""
    return dump_documents([obj.doc for obj in objects])


def dump_documents(docs: list[dict[str, Any]]) -> str:
    """Serialize raw documents as a multi-document YAML stream."""
    return yaml.dump_all(
        docs,
        Dumper=_Dumper,
        sort_keys=False,
        explicit_start=True,
    )


def dump_object(doc: dict[str, Any]) -> str:
    """Serialize a single document."""
    return yaml.dump(doc, Dumper=_Dumper, sort_keys=False)


def ensure_newline(content: str) -> str:
    """Make sure there is exactly one new line at the end of the content."""
    return content.rstrip("\n") + "\n"
