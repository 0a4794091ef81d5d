import pytest

from celine.keycloak_operator.reconcile.image import ImageRef, select_image

PINNED = "quay.io/keycloak/keycloak:7.0.1"


def test_parse_image_reference():
    ref = ImageRef.parse("quay.io/keycloak/keycloak:7.0.1")
    assert ref == ImageRef("quay.io/keycloak/keycloak", "7", "0", "1")
    assert ref.patch_number == 1
    assert ref.version == "7.0.1"


def test_parse_registry_port_is_not_a_tag():
    ref = ImageRef.parse("registry.local:5000/keycloak")
    assert ref.repository == "registry.local:5000/keycloak"
    assert ref.patch == ""
    assert ref.patch_number is None


def test_parse_non_numeric_patch():
    ref = ImageRef.parse("repo:7.0.1-rc1")
    assert ref.patch == "1-rc1"
    assert ref.patch_number is None


@pytest.mark.parametrize(
    "observed, expected",
    [
        ("quay.io/keycloak/keycloak:7.0.3", "quay.io/keycloak/keycloak:7.0.3"),
        ("quay.io/keycloak/keycloak:7.0.0", PINNED),
        ("quay.io/keycloak/keycloak:7.0.1", PINNED),
        ("quay.io/other/keycloak:7.0.9", PINNED),
        ("quay.io/keycloak/keycloak:7.1.5", PINNED),
        ("quay.io/keycloak/keycloak:8.0.5", PINNED),
        ("quay.io/keycloak/keycloak:7.0.x", PINNED),
        ("quay.io/keycloak/keycloak:latest", PINNED),
        (None, PINNED),
    ],
)
def test_select_image(observed, expected):
    assert select_image(observed, PINNED) == expected


def test_select_image_short_repo_names():
    assert select_image("repo:7.0.3", "repo:7.0.1") == "repo:7.0.3"
    assert select_image("repo:7.0.0", "repo:7.0.1") == "repo:7.0.1"
    assert select_image("other:7.0.9", "repo:7.0.1") == "repo:7.0.1"


def test_override_always_wins():
    assert select_image("repo:7.0.3", "repo:7.0.1", override="custom:1.0") == "custom:1.0"
    assert select_image(None, "repo:7.0.1", override="custom:1.0") == "custom:1.0"


def test_pinned_without_numeric_patch_wins():
    assert select_image("repo:7.0.3", "repo:7.0") == "repo:7.0"
