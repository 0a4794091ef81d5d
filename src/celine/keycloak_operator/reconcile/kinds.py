"""Per-kind ownership tables and the reconcile entrypoint.

Labels are managed key by key: the operator owns ``app`` and ``component``,
any other label set on the cluster is left alone.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from celine.keycloak_operator.reconcile.image import select_image
from celine.keycloak_operator.reconcile.ownership import (
    Ownership,
    OwnershipTable,
    get_path,
    merge,
)

logger = logging.getLogger(__name__)

KEYCLOAK_CONTAINER = "keycloak"

MANAGED_LABELS = ("metadata.labels.app", "metadata.labels.component")


@dataclass(frozen=True)
class KindPolicy:
    """How to reconcile one object kind."""

    table: OwnershipTable
    # Container whose image follows the image-selection policy
    image_container: str | None = None


STATEFULSET = KindPolicy(
    table=OwnershipTable.build(
        "StatefulSet",
        operator=[
            *MANAGED_LABELS,
            "spec.replicas",
            "spec.selector",
            "spec.template.metadata.labels",
            "spec.template.spec.volumes",
            "spec.template.spec.initContainers",
            "spec.template.spec.containers",
            "spec.template.spec.imagePullSecrets",
            "spec.template.spec.affinity",
        ],
    ),
    image_container=KEYCLOAK_CONTAINER,
)

CONFIGMAP = KindPolicy(
    table=OwnershipTable.build("ConfigMap", operator=[*MANAGED_LABELS, "data"]),
)

SECRET = KindPolicy(
    table=OwnershipTable.build(
        "Secret", operator=[*MANAGED_LABELS, "data", "stringData", "type"]
    ),
)

SERVICE = KindPolicy(
    table=OwnershipTable.build(
        "Service",
        operator=[*MANAGED_LABELS, "spec.ports", "spec.selector"],
        # assigned by the platform on creation
        external=["spec.clusterIP", "spec.clusterIPs"],
    ),
)

# Anything else: spec and data follow the desired object.
DEFAULT = KindPolicy(
    table=OwnershipTable.build(
        "*",
        operator=[*MANAGED_LABELS, "spec", "data", "stringData"],
        default=Ownership.EXTERNAL,
    ),
)

POLICIES: dict[str, KindPolicy] = {
    "StatefulSet": STATEFULSET,
    "ConfigMap": CONFIGMAP,
    "Secret": SECRET,
    "Service": SERVICE,
}


def policy_for(kind: str) -> KindPolicy:
    """Look up the policy for ``kind``, falling back to the default one."""
    return POLICIES.get(kind, DEFAULT)


def reconcile(
    observed: Mapping[str, Any] | None,
    desired: Mapping[str, Any],
    image_override: str | None = None,
) -> dict[str, Any]:
    """Produce the object to persist from the observed and desired objects.

    With nothing observed yet, the desired object is used for creation; only
    the image override applies to it.
    """
    policy = policy_for(desired.get("kind", ""))
    if observed is None:
        reconciled = copy.deepcopy(dict(desired))
    else:
        reconciled = merge(observed, desired, policy.table)

    if policy.image_container:
        _apply_image_policy(reconciled, observed, policy.image_container, image_override)

    return reconciled


def _apply_image_policy(
    reconciled: dict[str, Any],
    observed: Mapping[str, Any] | None,
    container_name: str,
    image_override: str | None,
) -> None:
    container = find_container(reconciled, container_name)
    if container is None or "image" not in container:
        return

    current = find_container(observed, container_name) if observed else None
    observed_image = current.get("image") if current else None
    container["image"] = select_image(observed_image, container["image"], image_override)


def find_container(obj: Mapping[str, Any], name: str) -> dict[str, Any] | None:
    containers = get_path(obj, "spec.template.spec.containers")
    if not isinstance(containers, list):
        return None
    for container in containers:
        if isinstance(container, dict) and container.get("name") == name:
            return container
    return None


def workload_ready(obj: Mapping[str, Any]) -> bool:
    """Whether a workload reports all of its replicas ready.

    Objects without replicas (config maps, secrets, services) are ready once
    they exist.
    """
    replicas = get_path(obj, "spec.replicas")
    if not isinstance(replicas, int):
        return True
    ready = get_path(obj, "status.readyReplicas")
    if not isinstance(ready, int):
        ready = 0
    return ready >= replicas
