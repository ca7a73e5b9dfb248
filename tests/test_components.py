"""Tests for loading a provider components file."""

import re

import pytest

from capi_assets.certificates import INJECT_CA_FROM
from capi_assets.components import CLUSTERCTL_LABEL, PROVIDER_LABEL, load_components
from capi_assets.exceptions import InjectionReferenceError, ManifestDecodeError
from capi_assets.manifest import ManifestObject
from capi_assets.provider import ProviderContext, ProviderType

from .conftest import TESTDATA

NAMESPACE = "openshift-cluster-api"
METAL3 = ProviderContext(
    name="metal3", type=ProviderType.INFRASTRUCTURE, version="v1.5.0"
)
COMPONENTS = (
    TESTDATA
    / "repository"
    / "infrastructure-metal3"
    / "v1.5.0"
    / "infrastructure-components.yaml"
)


@pytest.fixture
def objects() -> list[ManifestObject]:
    return load_components(COMPONENTS.read_bytes(), METAL3, NAMESPACE)


def by_name(objects: list[ManifestObject], kind: str, name: str) -> ManifestObject:
    return next(obj for obj in objects if obj.kind_name == kind and obj.name == name)


def test_load_components(objects: list[ManifestObject]) -> None:
    """Test every object in the file is loaded in order."""
    assert len(objects) == 18
    assert [obj.kind_name for obj in objects[:3]] == [
        "Namespace",
        "CustomResourceDefinition",
        "CustomResourceDefinition",
    ]


def test_target_namespace(objects: list[ManifestObject]) -> None:
    """Test namespaced objects move to the target namespace."""
    assert by_name(objects, "Namespace", NAMESPACE).namespace is None
    assert by_name(objects, "Deployment", "capm3-controller-manager").namespace == (
        NAMESPACE
    )
    assert by_name(objects, "Certificate", "capm3-serving-cert").namespace == NAMESPACE
    crd = by_name(
        objects,
        "CustomResourceDefinition",
        "metal3machines.infrastructure.cluster.x-k8s.io",
    )
    assert crd.namespace is None
    assert by_name(objects, "ClusterRole", "capm3-manager-role").namespace is None


def test_references_updated(objects: list[ManifestObject]) -> None:
    """Test references to the provider namespace follow the objects."""
    binding = by_name(objects, "ClusterRoleBinding", "capm3-manager-rolebinding")
    assert binding.doc["subjects"][0]["namespace"] == NAMESPACE

    webhooks = by_name(
        objects, "MutatingWebhookConfiguration", "capm3-mutating-webhook-configuration"
    )
    assert webhooks.doc["webhooks"][0]["clientConfig"]["service"]["namespace"] == (
        NAMESPACE
    )
    assert webhooks.annotations[INJECT_CA_FROM] == f"{NAMESPACE}/capm3-serving-cert"

    crd = by_name(
        objects,
        "CustomResourceDefinition",
        "metal3machines.infrastructure.cluster.x-k8s.io",
    )
    client_config = crd.doc["spec"]["conversion"]["webhook"]["clientConfig"]
    assert client_config["service"]["namespace"] == NAMESPACE
    assert crd.annotations[INJECT_CA_FROM] == f"{NAMESPACE}/capm3-serving-cert"


def test_common_labels(objects: list[ManifestObject]) -> None:
    """Test every object is labelled with the provider it belongs to."""
    for obj in objects:
        assert obj.labels[PROVIDER_LABEL] == "infrastructure-metal3"
        assert obj.labels[CLUSTERCTL_LABEL] == ""
    namespace = by_name(objects, "Namespace", NAMESPACE)
    assert namespace.labels["control-plane"] == "controller-manager"


def test_core_provider_label() -> None:
    """Test the core provider uses the fixed cluster-api label."""
    context = ProviderContext(
        name="cluster-api", type=ProviderType.CORE, version="v1.5.1"
    )
    content = (
        TESTDATA / "repository" / "cluster-api" / "v1.5.1" / "core-components.yaml"
    ).read_text()
    objects = load_components(content, context, NAMESPACE)
    assert {obj.labels[PROVIDER_LABEL] for obj in objects} == {"cluster-api"}


def test_malformed_injection_annotation() -> None:
    """Test an injection annotation is validated while loading."""
    content = f"""
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
  annotations:
    {INJECT_CA_FROM}: serving-cert
"""
    with pytest.raises(InjectionReferenceError, match="serving-cert"):
        load_components(content, METAL3, NAMESPACE)


@pytest.mark.parametrize(
    ("content", "expected_error"),
    [
        (
            """
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
spec:
  conversion: Webhook
""",
            "expected a mapping for spec.conversion",
        ),
        (
            """
apiVersion: admissionregistration.k8s.io/v1
kind: ValidatingWebhookConfiguration
metadata:
  name: validating-webhook-configuration
webhooks:
  - bogus
""",
            "expected a mapping for webhooks[0]",
        ),
        (
            """
apiVersion: admissionregistration.k8s.io/v1
kind: MutatingWebhookConfiguration
metadata:
  name: mutating-webhook-configuration
webhooks:
  - name: default.example.com
    clientConfig:
      service: webhook-service
""",
            "expected a mapping for webhooks[0].clientConfig.service",
        ),
        (
            """
apiVersion: rbac.authorization.k8s.io/v1
kind: RoleBinding
metadata:
  name: leader-election-rolebinding
  namespace: capm3-system
subjects:
  - capm3-manager
""",
            "expected a mapping for subjects[0]",
        ),
        (
            f"""
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
  annotations:
    {INJECT_CA_FROM}: [capm3-system/capm3-serving-cert]
""",
            f"expected a string for annotation {INJECT_CA_FROM}",
        ),
    ],
    ids=[
        "conversion-string",
        "webhook-string",
        "service-string",
        "subject-string",
        "annotation-list",
    ],
)
def test_invalid_shape(content: str, expected_error: str) -> None:
    """Test objects with fields of the wrong shape are rejected while loading."""
    with pytest.raises(ManifestDecodeError, match=re.escape(expected_error)):
        load_components(content, METAL3, NAMESPACE)
