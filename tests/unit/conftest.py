"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from foreman_provisioner.api.client import ForemanClient
from foreman_provisioner.config import load
from foreman_provisioner.core import ForemanProvider

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from foreman_provisioner.config.schema import Config

HOST = "https://foreman.test"

_FOREMAN_ENV_VARS = (
    "FOREMAN_HOST",
    "FOREMAN_USERNAME",
    "FOREMAN_PASSWORD",
    "FOREMAN_VERIFY_SSL",
    "FOREMAN_TIMEOUT",
    "FOREMAN_LOG",
    "FOREMAN_CONFIG",
)

_OVERRIDE_VALUES = re.compile(r"^smart_class_parameters/(\d+)/override_values(?:/(\d+))?$")
_PARAMETERS = re.compile(r"^(hosts|hostgroups|environments)/(\d+)/parameters(?:/(\d+))?$")
_NAME_SEARCH = re.compile(r'^name="(.*)"$')


def make_response(
    request: requests.PreparedRequest, status: int, payload: Any = None
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = str(request.url)
    resp.request = request
    resp.headers["Content-Type"] = "application/json"
    resp._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
    return resp


class FakeForeman:
    """In-memory Foreman serving the parameter and override value endpoints."""

    def __init__(self) -> None:
        # (parent kind, parent id, parameter id) -> parameter payload
        self.parameters: dict[tuple[str, int, int], dict[str, Any]] = {}
        # parameter id -> {override value id -> payload}
        self.override_values: dict[int, dict[int, dict[str, Any]]] = {}
        self.requests: list[requests.PreparedRequest] = []
        self._next_id = 100

    # -- seeding -----------------------------------------------------------

    def add_parameter(
        self, kind: str, parent_id: int, parameter_id: int, parameter: str, **attrs: Any
    ) -> None:
        payload = {
            "id": parameter_id,
            "parameter": parameter,
            "override": False,
            "description": "",
            "default_value": None,
            "omit": False,
            "parameter_type": "string",
            "required": False,
            **attrs,
        }
        self.parameters[(kind, parent_id, parameter_id)] = payload
        self.override_values.setdefault(parameter_id, {})

    def add_override_value(
        self, parameter_id: int, match: str, value: Any, *, omit: bool = False
    ) -> int:
        self._next_id += 1
        self.override_values.setdefault(parameter_id, {})[self._next_id] = {
            "id": self._next_id,
            "match": match,
            "value": value,
            "omit": omit,
        }
        return self._next_id

    # -- inspection --------------------------------------------------------

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        """``(method, path)`` for each request received, relative to ``/api/``."""
        out = []
        for r in self.requests:
            if method is None or r.method == method:
                out.append((str(r.method), _api_path(r)))
        return out

    # -- transport ---------------------------------------------------------

    def __call__(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        _ = kwargs
        self.requests.append(request)
        path = _api_path(request)
        body = json.loads(request.body) if request.body else {}
        search = parse_qs(urlsplit(str(request.url)).query).get("search", [""])[0]

        if m := _OVERRIDE_VALUES.match(path):
            return self._override_values(request, int(m[1]), m[2], body, search)
        if m := _PARAMETERS.match(path):
            return self._parameters(request, m[1], int(m[2]), m[3], body, search)
        return make_response(request, 404, {"error": {"message": "Route not found"}})

    def _override_values(
        self,
        request: requests.PreparedRequest,
        parameter_id: int,
        ov_id: str | None,
        body: dict[str, Any],
        search: str,
    ) -> requests.Response:
        values = self.override_values.get(parameter_id)
        if values is None:
            return make_response(request, 404, {"message": "Parameter not found"})

        if ov_id is None:
            if request.method == "POST":
                attrs = body["override_value"]
                new_id = self.add_override_value(
                    parameter_id, attrs["match"], attrs.get("value"), omit=attrs.get("omit", False)
                )
                return make_response(request, 201, values[new_id])
            results = list(values.values())
            if m := _NAME_SEARCH.match(search):
                results = [v for v in results if v["match"] == m[1]]
            return make_response(request, 200, _envelope(len(values), results, search))

        current = values.get(int(ov_id))
        if current is None:
            return make_response(request, 404, {"message": "Override value not found"})
        if request.method == "PUT":
            current.update(body["override_value"])
        elif request.method == "DELETE":
            del values[int(ov_id)]
        return make_response(request, 200, current)

    def _parameters(
        self,
        request: requests.PreparedRequest,
        kind: str,
        parent_id: int,
        parameter_id: str | None,
        body: dict[str, Any],
        search: str,
    ) -> requests.Response:
        if parameter_id is None:
            results = [
                self._parameter_payload(pid, p)
                for (k, parent, pid), p in self.parameters.items()
                if (k, parent) == (kind, parent_id)
            ]
            total = len(results)
            if m := _NAME_SEARCH.match(search):
                results = [p for p in results if p["parameter"] == m[1]]
            return make_response(request, 200, _envelope(total, results, search))

        current = self.parameters.get((kind, parent_id, int(parameter_id)))
        if current is None:
            return make_response(request, 404, {"message": "Parameter not found"})
        if request.method == "PUT":
            current.update(body)
        return make_response(request, 200, self._parameter_payload(int(parameter_id), current))

    def _parameter_payload(self, parameter_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            **payload,
            "override_values": list(self.override_values.get(parameter_id, {}).values()),
        }


def _api_path(request: requests.PreparedRequest) -> str:
    path = urlsplit(str(request.url)).path
    return path.split("/api/", 1)[1].strip("/")


def _envelope(total: int, results: list[dict[str, Any]], search: str) -> dict[str, Any]:
    return {
        "total": total,
        "subtotal": len(results),
        "page": 1,
        "per_page": 20,
        "search": search or None,
        "results": results,
    }


@pytest.fixture(autouse=True)
def _clean_foreman_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove FOREMAN_* env vars so unit tests don't leak host config."""
    for var in _FOREMAN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def foreman(monkeypatch: pytest.MonkeyPatch) -> FakeForeman:
    """Route every ``requests.Session.send`` to an in-memory Foreman."""
    fake = FakeForeman()
    monkeypatch.setattr(
        requests.Session, "send", lambda _self, request, **kwargs: fake(request, **kwargs)
    )
    return fake


@pytest.fixture
def client(foreman: FakeForeman) -> ForemanClient:
    _ = foreman
    return ForemanClient(HOST, auth=("admin", "changeme"))


@pytest.fixture
def provider(client: ForemanClient) -> ForemanProvider:
    return ForemanProvider.from_client(client)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make
