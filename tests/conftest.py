"""Pytest configuration and fixtures."""

from __future__ import annotations

import re

import httpx
import pytest

from celine.keycloak_operator.config import Settings

BASE_URL = "http://keycloak.test"
TOKEN_PATH = "/auth/realms/master/protocol/openid-connect/token"
REALM = "testrealm"
CLIENT_UUID = "testclient"


class FakeKeycloak:
    """In-memory Keycloak admin API served through httpx.MockTransport.

    Holds a client scope catalog and the default scopes assigned to each
    client, and records every request it sees.
    """

    def __init__(self, catalog: dict[str, str], assigned: dict[str, set[str]]):
        self.catalog = dict(catalog)  # name -> id
        self.assigned = {k: set(v) for k, v in assigned.items()}
        self.requests: list[httpx.Request] = []
        self.token_requests = 0
        self.reject_next = 0  # answer this many admin calls with 401
        self.failures: dict[tuple[str, str], int] = {}  # (method, scope name) -> status

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def mutations(self) -> list[tuple[str, str]]:
        """(method, scope name) of every PUT/DELETE on an assignment."""
        out = []
        for request in self.requests:
            if request.method in ("PUT", "DELETE"):
                scope_id = request.url.path.rsplit("/", 1)[-1]
                out.append((request.method, self._name_for(scope_id)))
        return out

    def _name_for(self, scope_id: str) -> str:
        for name, sid in self.catalog.items():
            if sid == scope_id:
                return name
        return scope_id

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == TOKEN_PATH:
            self.token_requests += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.token_requests}", "expires_in": 300},
            )

        self.requests.append(request)

        if self.reject_next:
            self.reject_next -= 1
            return httpx.Response(401)

        prefix = f"/auth/admin/realms/{REALM}"

        if path == f"{prefix}/client-scopes" and request.method == "GET":
            return httpx.Response(
                200, json=[{"id": sid, "name": name} for name, sid in self.catalog.items()]
            )

        match = re.fullmatch(
            rf"{prefix}/clients/([^/]+)/default-client-scopes(?:/([^/]+))?", path
        )
        if match:
            client, scope_id = match.groups()
            assigned = self.assigned.setdefault(client, set())

            if scope_id is None and request.method == "GET":
                return httpx.Response(
                    200,
                    json=[{"id": self.catalog[n], "name": n} for n in sorted(assigned)],
                )

            name = self._name_for(scope_id)
            status = self.failures.get((request.method, name))
            if status:
                return httpx.Response(status, text="injected failure")

            if request.method == "PUT":
                assigned.add(name)
                return httpx.Response(204)
            if request.method == "DELETE":
                if name not in assigned:
                    return httpx.Response(404)
                assigned.discard(name)
                return httpx.Response(204)

        return httpx.Response(500, text=f"unexpected {request.method} {path}")


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake Keycloak."""
    return Settings(
        base_url=BASE_URL,
        admin_user="admin",
        admin_password="admin",
        keycloak_image="quay.io/keycloak/keycloak:7.0.1",
    )


@pytest.fixture
def fake_keycloak() -> FakeKeycloak:
    """Catalog a, b, k, u; the test client currently has a, b, u."""
    return FakeKeycloak(
        catalog={"a": "id-a", "b": "id-b", "k": "id-k", "u": "id-u"},
        assigned={CLIENT_UUID: {"a", "b", "u"}},
    )


@pytest.fixture
def statefulset() -> dict:
    """A desired Keycloak StatefulSet (as built from the custom resource)."""
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {
            "name": "keycloak",
            "namespace": "sso",
            "labels": {"app": "keycloak", "component": "keycloak"},
        },
        "spec": {
            "replicas": 2,
            "selector": {"matchLabels": {"app": "keycloak", "component": "keycloak"}},
            "template": {
                "metadata": {"labels": {"app": "keycloak", "component": "keycloak"}},
                "spec": {
                    "volumes": [{"name": "keycloak-extensions", "emptyDir": {}}],
                    "containers": [
                        {
                            "name": "keycloak",
                            "image": "quay.io/keycloak/keycloak:7.0.1",
                            "env": [{"name": "DB_VENDOR", "value": "POSTGRES"}],
                        }
                    ],
                },
            },
        },
    }


@pytest.fixture
def observed_statefulset(statefulset) -> dict:
    """The same StatefulSet as stored on the cluster, drifted."""
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {
            "name": "keycloak",
            "namespace": "sso",
            "uid": "0b9d0c1e-1111-2222-3333-444455556666",
            "resourceVersion": "4711",
            "labels": {"app": "keycloak", "component": "old", "team": "identity"},
            "annotations": {"deployment.kubernetes.io/revision": "3"},
        },
        "spec": {
            "replicas": 5,
            "serviceName": "keycloak-discovery",
            "selector": {"matchLabels": {"app": "keycloak", "component": "keycloak"}},
            "template": {
                "metadata": {"labels": {"app": "keycloak", "component": "keycloak"}},
                "spec": {
                    "volumes": [],
                    "containers": [
                        {
                            "name": "keycloak",
                            "image": "quay.io/keycloak/keycloak:7.0.3",
                            "env": [],
                        }
                    ],
                    "dnsPolicy": "ClusterFirst",
                },
            },
        },
        "status": {"replicas": 5, "readyReplicas": 2},
    }
