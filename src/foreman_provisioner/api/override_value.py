"""Override values on top of smart class parameters."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from foreman_provisioner.api.errors import RequestConstructionError
from foreman_provisioner.api.query import QueryResponse, name_search

if TYPE_CHECKING:
    from foreman_provisioner.api.client import ForemanClient

logger = logging.getLogger(__name__)


def as_text(v: Any) -> Any:
    """Foreman echoes typed values (``true``, arrays, hashes); keep their JSON text."""
    if v is None or isinstance(v, str):
        return v
    return json.dumps(v, separators=(",", ":"))


Text = Annotated[str | None, BeforeValidator(as_text)]


class ForemanOverrideValue(BaseModel):
    """An override of a smart class parameter's value for hosts matching ``match``.

    ``id`` and ``smart_class_parameter_id`` address the object and are never
    part of the request body.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = Field(default=None, exclude=True)
    smart_class_parameter_id: int | None = Field(default=None, exclude=True)

    match: str | None = None
    # Required by Foreman unless omit is true
    value: Text = None
    omit: bool | None = None


class OverrideValueAPI:
    """CRUD and search for ``override_values`` scoped under a parameter."""

    wrapper_key = "override_value"

    def __init__(self, client: ForemanClient) -> None:
        self.client = client

    def _endpoint(self, parameter_id: int | None, *suffix: int) -> str:
        if parameter_id is None:
            raise RequestConstructionError("Override value requires smart_class_parameter_id")
        return self.client.endpoints.resolve("override_values", *suffix, parameter_id=parameter_id)

    @staticmethod
    def _require_id(ov: ForemanOverrideValue) -> int:
        if ov.id is None:
            raise RequestConstructionError("Override value has no id")
        return ov.id

    def _scoped(self, ov: ForemanOverrideValue, parameter_id: int) -> ForemanOverrideValue:
        # The server payload does not always echo the parent reference.
        if ov.smart_class_parameter_id is None:
            ov.smart_class_parameter_id = parameter_id
        return ov

    def create(self, ov: ForemanOverrideValue) -> ForemanOverrideValue:
        """Create ``ov`` and return the server's copy, including its new id."""
        endpoint = self._endpoint(ov.smart_class_parameter_id)
        body = self.client.wrap_json(self.wrapper_key, ov)
        logger.debug("Create override value body: %s", body)

        req = self.client.new_request("POST", endpoint, body=body)
        created = self.client.send_and_parse(req, ForemanOverrideValue)
        logger.debug("Created override value: %r", created)
        return self._scoped(created, ov.smart_class_parameter_id)  # type: ignore[arg-type]

    def read(self, parameter_id: int, override_value_id: int) -> ForemanOverrideValue:
        req = self.client.new_request("GET", self._endpoint(parameter_id, override_value_id))
        found = self.client.send_and_parse(req, ForemanOverrideValue)
        logger.debug("Read override value: %r", found)
        return self._scoped(found, parameter_id)

    def update(self, ov: ForemanOverrideValue) -> ForemanOverrideValue:
        """Replace the attributes of the override value identified by ``ov.id``."""
        endpoint = self._endpoint(ov.smart_class_parameter_id, self._require_id(ov))
        body = self.client.wrap_json(self.wrapper_key, ov)
        logger.debug("Update override value body: %s", body)

        req = self.client.new_request("PUT", endpoint, body=body)
        updated = self.client.send_and_parse(req, ForemanOverrideValue)
        logger.debug("Updated override value: %r", updated)
        return self._scoped(updated, ov.smart_class_parameter_id)  # type: ignore[arg-type]

    def delete(self, parameter_id: int, override_value_id: int) -> None:
        req = self.client.new_request("DELETE", self._endpoint(parameter_id, override_value_id))
        self.client.send_and_parse(req)
        logger.debug("Deleted override value %d of parameter %d", override_value_id, parameter_id)

    def query(self, ov: ForemanOverrideValue) -> QueryResponse[ForemanOverrideValue]:
        """Search the parameter's override values by match expression."""
        if ov.match is None:
            raise RequestConstructionError("Override value search requires a match expression")
        req = self.client.new_request(
            "GET",
            self._endpoint(ov.smart_class_parameter_id),
            params=name_search(ov.match),
        )
        response = self.client.send_and_parse(req, QueryResponse[ForemanOverrideValue])
        for result in response.results:
            self._scoped(result, ov.smart_class_parameter_id)  # type: ignore[arg-type]
        logger.debug("Override value query returned %d result(s)", response.count)
        return response
