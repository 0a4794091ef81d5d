import copy

import pytest

from celine.keycloak_operator.reconcile.ownership import (
    IDENTITY_PATHS,
    Ownership,
    OwnershipTable,
    get_path,
    merge,
    set_path,
)

TABLE = OwnershipTable.build(
    "Widget",
    operator=["spec", "metadata.labels.app"],
    external=["spec.nodeName"],
)


def _observed() -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Widget",
        "metadata": {
            "name": "w",
            "namespace": "ns",
            "uid": "uid-1",
            "resourceVersion": "42",
            "labels": {"app": "stale", "owner": "someone"},
        },
        "spec": {"size": 5, "color": "red", "nodeName": "node-7"},
        "status": {"phase": "Running"},
    }


def _desired() -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Widget",
        "metadata": {"name": "w", "namespace": "ns", "labels": {"app": "widget"}},
        "spec": {"size": 2},
    }


def test_operator_fields_follow_desired():
    reconciled = merge(_observed(), _desired(), TABLE)
    assert reconciled["spec"]["size"] == 2
    assert "color" not in reconciled["spec"]
    assert reconciled["metadata"]["labels"]["app"] == "widget"


def test_external_fields_follow_observed():
    observed = _observed()
    reconciled = merge(observed, _desired(), TABLE)

    for path in IDENTITY_PATHS:
        assert get_path(reconciled, path) == get_path(observed, path)
    assert reconciled["metadata"]["labels"]["owner"] == "someone"
    # external field nested inside an operator-owned subtree survives
    assert reconciled["spec"]["nodeName"] == "node-7"


def test_merge_is_idempotent():
    once = merge(_observed(), _desired(), TABLE)
    twice = merge(once, _desired(), TABLE)
    assert once == twice
    assert merge(_observed(), _desired(), TABLE) == once


def test_merge_does_not_mutate_inputs():
    observed, desired = _observed(), _desired()
    before = copy.deepcopy((observed, desired))
    reconciled = merge(observed, desired, TABLE)
    reconciled["spec"]["size"] = 99
    assert (observed, desired) == before


def test_operator_default_keeps_only_external_paths_from_observed():
    table = OwnershipTable.build("Widget", default=Ownership.OPERATOR)
    reconciled = merge(_observed(), _desired(), table)

    assert reconciled["spec"] == {"size": 2}
    assert reconciled["metadata"]["labels"] == {"app": "widget"}
    assert reconciled["metadata"]["resourceVersion"] == "42"
    assert reconciled["status"] == {"phase": "Running"}


def test_ownership_of_uses_most_specific_rule():
    assert TABLE.ownership_of("spec.size") is Ownership.OPERATOR
    assert TABLE.ownership_of("spec.nodeName") is Ownership.EXTERNAL
    assert TABLE.ownership_of("metadata.labels.owner") is Ownership.EXTERNAL
    assert TABLE.ownership_of("status.phase") is Ownership.EXTERNAL


def test_path_cannot_be_owned_twice():
    with pytest.raises(ValueError):
        OwnershipTable.build("Widget", operator=["spec"], external=["spec"])


def test_set_path_creates_and_deletes():
    obj: dict = {}
    set_path(obj, "a.b.c", 1)
    assert obj == {"a": {"b": {"c": 1}}}
    set_path(obj, "a.b.c", get_path({}, "missing"))
    assert obj == {"a": {"b": {}}}
