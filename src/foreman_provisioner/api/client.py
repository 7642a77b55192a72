"""HTTP client for the Foreman REST API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, TypeVar, overload
from urllib.parse import urljoin

import requests
from pydantic import BaseModel, ConfigDict, ValidationError

from foreman_provisioner.api.errors import (
    DecodeError,
    NotFoundError,
    RequestConstructionError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


class Endpoints(BaseModel):
    """Endpoint templates, relative to the ``/api/`` root.

    Templates use ``str.format`` fields: ``{parameter_id}`` for override values,
    ``{parent_kind}`` and ``{parent_id}`` for smart class parameters.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    override_values: str = "smart_class_parameters/{parameter_id}/override_values"
    parameters: str = "{parent_kind}/{parent_id}/parameters"

    def resolve(self, template: str, *suffix: int | str, **fields: Any) -> str:
        """Format the named template and append ``suffix`` path segments."""
        try:
            path = getattr(self, template).format(**fields)
        except (AttributeError, KeyError, IndexError, ValueError) as exc:
            raise RequestConstructionError(
                f"Cannot build endpoint '{template}' from {fields}: {exc}"
            ) from exc
        return "/".join([path.strip("/"), *(str(s) for s in suffix)])


class ForemanClient:
    """Thin wrapper around a ``requests.Session`` bound to one Foreman server.

    The client builds authenticated requests and decodes JSON responses into
    pydantic models. It holds no per-call state, so one instance can serve
    concurrent callers as long as the underlying session can.
    """

    def __init__(
        self,
        host: str,
        *,
        auth: tuple[str, str] | None = None,
        verify_ssl: bool = True,
        timeout: float | None = None,
        endpoints: Endpoints | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.host = host.rstrip("/")
        self.base_url = f"{self.host}/api/"
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.endpoints = endpoints or Endpoints()
        self.session = session or requests.Session()
        self.session.headers.update(_JSON_HEADERS)
        if auth is not None:
            self.session.auth = auth

    def new_request(
        self,
        method: str,
        endpoint: str,
        *,
        body: bytes | None = None,
        params: Mapping[str, str] | None = None,
    ) -> requests.PreparedRequest:
        """Build a prepared request for ``endpoint`` (relative to ``/api/``)."""
        url = urljoin(self.base_url, endpoint.lstrip("/"))
        try:
            req = requests.Request(method, url, data=body, params=dict(params or {}))
            return self.session.prepare_request(req)
        except (requests.RequestException, ValueError) as exc:
            raise RequestConstructionError(f"Invalid request {method} {url}: {exc}") from exc

    @overload
    def send_and_parse(self, request: requests.PreparedRequest, model: type[M]) -> M: ...

    @overload
    def send_and_parse(self, request: requests.PreparedRequest, model: None = None) -> None: ...

    def send_and_parse(
        self, request: requests.PreparedRequest, model: type[M] | None = None
    ) -> M | None:
        """Send ``request`` and decode the JSON body into ``model``.

        With ``model=None`` the body is discarded (e.g. for DELETE).
        """
        logger.debug("%s %s", request.method, request.url)
        try:
            response = self.session.send(request, timeout=self.timeout, verify=self.verify_ssl)
        except requests.RequestException as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc

        logger.debug("%s %s -> %d", request.method, request.url, response.status_code)
        if response.status_code == 404:
            raise NotFoundError(str(request.url))
        if not response.ok:
            raise TransportError(
                f"HTTP {response.status_code} for {request.method} {request.url}: {response.text}",
                status_code=response.status_code,
            )

        if model is None:
            return None
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise DecodeError(
                f"Unexpected response body from {request.method} {request.url}: {exc}"
            ) from exc

    @staticmethod
    def _dump(model: BaseModel) -> dict[str, Any]:
        try:
            return model.model_dump(mode="json", exclude_none=True)
        except ValueError as exc:
            raise RequestConstructionError(f"Cannot serialize {type(model).__name__}: {exc}") from exc

    @classmethod
    def to_json(cls, model: BaseModel) -> bytes:
        """Serialize a model, leaving out unset (``None``) and non-wire fields."""
        return json.dumps(cls._dump(model)).encode("utf-8")

    @classmethod
    def wrap_json(cls, key: str, model: BaseModel) -> bytes:
        """Serialize a model under a top-level wrapper key, e.g. ``{"override_value": {...}}``."""
        return json.dumps({key: cls._dump(model)}).encode("utf-8")
