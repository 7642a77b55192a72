"""Tests for the Foreman HTTP client wrapper."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests
from pydantic import BaseModel

from foreman_provisioner.api.client import Endpoints, ForemanClient
from foreman_provisioner.api.errors import (
    DecodeError,
    DomainError,
    NotFoundError,
    RequestConstructionError,
    TransportError,
)
from foreman_provisioner.api.override_value import ForemanOverrideValue
from tests.unit.conftest import HOST, make_response


class Thing(BaseModel):
    id: int
    name: str


def _client_with(send: MagicMock) -> ForemanClient:
    session = requests.Session()
    session.send = send  # type: ignore[method-assign]
    return ForemanClient(f"{HOST}/", auth=("admin", "changeme"), timeout=5.0, session=session)


class TestEndpoints:
    def test_default_templates(self) -> None:
        e = Endpoints()
        assert e.resolve("override_values", parameter_id=7) == (
            "smart_class_parameters/7/override_values"
        )
        assert e.resolve("parameters", 12, parent_kind="hostgroups", parent_id=3) == (
            "hostgroups/3/parameters/12"
        )

    def test_custom_template(self) -> None:
        e = Endpoints(override_values="/v2/params/{parameter_id}/overrides/")
        assert e.resolve("override_values", 9, parameter_id=1) == "v2/params/1/overrides/9"

    def test_missing_field_raises(self) -> None:
        with pytest.raises(RequestConstructionError, match="override_values"):
            Endpoints().resolve("override_values")

    def test_unknown_template_raises(self) -> None:
        with pytest.raises(RequestConstructionError):
            Endpoints().resolve("hosts", id=1)

    def test_extra_keys_rejected(self) -> None:
        with pytest.raises(ValueError):
            Endpoints.model_validate({"bogus": "x"})


class TestRequests:
    def test_new_request_joins_api_root_and_sets_headers(self) -> None:
        client = _client_with(MagicMock())
        req = client.new_request(
            "GET", "smart_class_parameters/7/override_values", params={"search": 'name="a=b"'}
        )

        assert client.base_url == f"{HOST}/api/"
        assert req.url is not None
        assert req.url.startswith(f"{HOST}/api/smart_class_parameters/7/override_values?")
        assert "search=name%3D%22a%3Db%22" in req.url
        assert req.headers["Accept"] == "application/json"
        assert req.headers["Content-Type"] == "application/json"
        assert req.headers["Authorization"].startswith("Basic ")

    def test_send_and_parse_decodes_model(self) -> None:
        send = MagicMock()
        client = _client_with(send)
        req = client.new_request("GET", "things/1")
        send.return_value = make_response(req, 200, {"id": 1, "name": "a", "extra": True})

        thing = client.send_and_parse(req, Thing)

        assert thing == Thing(id=1, name="a")
        send.assert_called_once_with(req, timeout=5.0, verify=True)

    def test_send_and_parse_without_model_discards_body(self) -> None:
        send = MagicMock()
        client = _client_with(send)
        req = client.new_request("DELETE", "things/1")
        send.return_value = make_response(req, 200, {"id": 1})

        assert client.send_and_parse(req) is None

    def test_404_raises_not_found(self) -> None:
        send = MagicMock()
        client = _client_with(send)
        req = client.new_request("GET", "things/1")
        send.return_value = make_response(req, 404, {"message": "nope"})

        with pytest.raises(NotFoundError) as exc_info:
            client.send_and_parse(req, Thing)

        assert isinstance(exc_info.value, DomainError)
        assert "things/1" in str(exc_info.value)

    def test_server_error_raises_transport_error_with_status(self) -> None:
        send = MagicMock()
        client = _client_with(send)
        req = client.new_request("PUT", "things/1", body=b"{}")
        send.return_value = make_response(req, 422, {"error": "invalid"})

        with pytest.raises(TransportError) as exc_info:
            client.send_and_parse(req, Thing)

        assert exc_info.value.status_code == 422
        assert "invalid" in str(exc_info.value)

    def test_network_failure_raises_transport_error(self) -> None:
        send = MagicMock(side_effect=requests.ConnectionError("connection refused"))
        client = _client_with(send)
        req = client.new_request("GET", "things/1")

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            client.send_and_parse(req, Thing)

        assert exc_info.value.status_code is None

    def test_unexpected_body_raises_decode_error(self) -> None:
        send = MagicMock()
        client = _client_with(send)
        req = client.new_request("GET", "things/1")
        send.return_value = make_response(req, 200, {"name": "missing id"})

        with pytest.raises(DecodeError):
            client.send_and_parse(req, Thing)


class TestSerialization:
    def test_to_json_leaves_out_unset_and_identity_fields(self) -> None:
        ov = ForemanOverrideValue(id=5, smart_class_parameter_id=7, match="os=Debian")
        assert json.loads(ForemanClient.to_json(ov)) == {"match": "os=Debian"}

    def test_wrap_json(self) -> None:
        ov = ForemanOverrideValue(match="os=Debian", value="x", omit=False)
        assert json.loads(ForemanClient.wrap_json("override_value", ov)) == {
            "override_value": {"match": "os=Debian", "value": "x", "omit": False}
        }
