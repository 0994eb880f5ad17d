"""Pytest shared fixtures: network guard rails, a scripted HTTP fake and an in-memory backend."""
import json
import pathlib
import sys
from types import SimpleNamespace
from typing import Dict, List, Optional
from urllib.parse import urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from benutzerverwaltung.core.backend import RoleCatalogBackend
from benutzerverwaltung.core.errors import BackendAPIError
from benutzerverwaltung.core.models import CanonicalUser, ProviderUser, RoleCatalogEntry


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting live services.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(*args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP call in unit test: {args[:2]}")

    for name in ("request", "get", "post", "put", "patch", "delete"):
        monkeypatch.setattr(requests, name, _refuse)


# ─────────────────────────────────────────────────────────────────────────────
# Scripted HTTP fake
# ─────────────────────────────────────────────────────────────────────────────
class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, headers: Optional[Dict] = None, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}
        self.url = url
        self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHttp:
    """Stand-in for ``requests.request`` answering from scripted routes.

    ``add(method, path, *responses)`` queues responses for a URL path; the
    last queued response is reused once the queue is down to one entry.
    Every call is recorded in ``calls``.
    """

    def __init__(self):
        self.routes: Dict[tuple, List[FakeResponse]] = {}
        self.calls: List[SimpleNamespace] = []

    def add(self, method: str, path: str, *responses: FakeResponse) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responses or [FakeResponse(status_code=204)])

    def __call__(self, method, url, **kwargs):
        path = urlparse(url).path
        self.calls.append(SimpleNamespace(
            method=method.upper(),
            url=url,
            path=path,
            params=kwargs.get("params"),
            json=kwargs.get("json"),
            data=kwargs.get("data"),
            headers=kwargs.get("headers") or {},
            auth=kwargs.get("auth"),
            timeout=kwargs.get("timeout"),
        ))
        queue = self.routes.get((method.upper(), path))
        if not queue:
            raise RuntimeError(f"No scripted response for {method} {path}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        response.url = url
        return response

    def post(self, url, **kwargs):
        return self("POST", url, **kwargs)

    def requests_to(self, method: str, path: str) -> List[SimpleNamespace]:
        return [call for call in self.calls if call.method == method and call.path == path]

    @property
    def mutations(self) -> List[SimpleNamespace]:
        return [call for call in self.calls if call.method != "GET" and not call.path.endswith("/token")]


@pytest.fixture()
def fake_http(monkeypatch):
    http = FakeHttp()
    monkeypatch.setattr(requests, "request", http)
    monkeypatch.setattr(requests, "post", http.post)
    return http


# ─────────────────────────────────────────────────────────────────────────────
# In-memory backend
# ─────────────────────────────────────────────────────────────────────────────
class RecordingBackend(RoleCatalogBackend):
    """Role-capable backend that records every operation in ``ops``."""

    name = "memory"

    def __init__(self, actual=(), catalog=(), user_roles=None, fail_on=None):
        self.actual = list(actual)
        self.catalog = list(catalog)
        self.user_roles: Dict[str, List[RoleCatalogEntry]] = dict(user_roles or {})
        self.fail_on = fail_on
        self.ops: List[tuple] = []

    def _maybe_fail(self, operation: str, identifier: str) -> None:
        if self.fail_on == (operation, identifier):
            raise BackendAPIError(500, f"{operation} failed", identifier)

    def connect(self):
        self.ops.append(("connect",))

    def fetch_actual_users(self):
        return list(self.actual)

    def resolve_identifier(self, username):
        return next((user for user in self.actual if user.identifier == username), None)

    def create(self, user: CanonicalUser):
        self._maybe_fail("create", user.identifier)
        self.ops.append(("create", user.identifier))

    def update(self, provider_user: ProviderUser, user: CanonicalUser):
        self._maybe_fail("update", user.identifier)
        self.ops.append(("update", user.identifier))

    def delete(self, provider_user: ProviderUser):
        self._maybe_fail("delete", provider_user.identifier)
        self.ops.append(("delete", provider_user.identifier))

    def fetch_role_catalog(self):
        return list(self.catalog)

    def create_role(self, name):
        self._maybe_fail("create_role", name)
        self.ops.append(("create_role", name))
        self.catalog.append(RoleCatalogEntry(provider_role_id=f"r-{name}", name=name))

    def fetch_user_roles(self, provider_user):
        return list(self.user_roles.get(provider_user.identifier, []))

    def assign_roles(self, provider_user, add, remove):
        self._maybe_fail("assign", provider_user.identifier)
        self.ops.append((
            "assign",
            provider_user.identifier,
            [role.name for role in add],
            [role.name for role in remove],
        ))
        current = [role for role in self.user_roles.get(provider_user.identifier, []) if role not in remove]
        self.user_roles[provider_user.identifier] = current + list(add)


@pytest.fixture()
def recording_backend():
    return RecordingBackend


def make_user(identifier: str, *roles: str, **fields) -> CanonicalUser:
    fields.setdefault("first_name", identifier.capitalize())
    fields.setdefault("last_name", "Tester")
    fields.setdefault("email", f"{identifier}@hhu.de")
    return CanonicalUser(identifier=identifier, roles=tuple(roles), **fields)


@pytest.fixture()
def user_factory():
    return make_user
