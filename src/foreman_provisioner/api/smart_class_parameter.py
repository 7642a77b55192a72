"""Smart class parameters, scoped to a host, host group or environment.

Smart class parameters are imported by the Puppet integration. Foreman only
lets them be read and updated, never created or deleted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field

from foreman_provisioner.api.errors import RequestConstructionError
from foreman_provisioner.api.override_value import ForemanOverrideValue, Text
from foreman_provisioner.api.query import QueryResponse, name_search

if TYPE_CHECKING:
    from foreman_provisioner.api.client import ForemanClient
    from foreman_provisioner.api.override_value import OverrideValueAPI

logger = logging.getLogger(__name__)


class HostParent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["hosts"] = "hosts"
    id: int


class HostGroupParent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["hostgroups"] = "hostgroups"
    id: int


class EnvironmentParent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["environments"] = "environments"
    id: int


ParameterParent = Annotated[
    HostParent | HostGroupParent | EnvironmentParent,
    Discriminator("kind"),
]

_PARENTS_BY_KIND: dict[str, type[HostParent | HostGroupParent | EnvironmentParent]] = {
    "hosts": HostParent,
    "hostgroups": HostGroupParent,
    "environments": EnvironmentParent,
}


def parent_from_ids(
    *,
    host_id: int | None = None,
    hostgroup_id: int | None = None,
    environment_id: int | None = None,
) -> HostParent | HostGroupParent | EnvironmentParent:
    """Resolve the parent from loose ids. Exactly one must be set."""
    candidates = [
        (parent_cls, value)
        for parent_cls, value in (
            (HostParent, host_id),
            (HostGroupParent, hostgroup_id),
            (EnvironmentParent, environment_id),
        )
        if value is not None
    ]
    if len(candidates) != 1:
        raise RequestConstructionError(
            "Smart class parameter needs exactly one of host_id, hostgroup_id, "
            f"environment_id (got {len(candidates)})"
        )
    parent_cls, value = candidates[0]
    return parent_cls(id=value)


def parent_from_kind(kind: str, parent_id: int) -> HostParent | HostGroupParent | EnvironmentParent:
    """Build a parent from its URL segment, e.g. ``("hostgroups", 4)``."""
    try:
        return _PARENTS_BY_KIND[kind](id=parent_id)
    except KeyError as e:
        raise RequestConstructionError(
            f"Unknown parent kind '{kind}', expected one of {', '.join(_PARENTS_BY_KIND)}"
        ) from e


class SmartClassOverrideValue(BaseModel):
    """Override value as nested in a smart class parameter payload."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = Field(default=None, exclude=True)
    match: str
    value: Text = None
    omit: bool = False


class ForemanSmartClassParameter(BaseModel):
    """A Puppet class parameter as exposed by Foreman.

    ``parent`` and ``id`` form the API identity and are not serialized.
    ``None`` means "not set": the field is neither sent nor compared.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = Field(default=None, exclude=True)
    parent: ParameterParent | None = Field(default=None, exclude=True)
    parameter: str | None = Field(default=None, exclude=True)

    override: bool | None = None
    description: str | None = None
    default_value: Text = None
    hidden_value: bool | None = None
    omit: bool | None = None
    path: str | None = None
    validator_type: str | None = None
    validator_rule: str | None = None
    override_values: list[SmartClassOverrideValue] | None = Field(default=None, exclude=True)
    override_value_order: str | None = None
    parameter_type: str | None = None
    required: bool | None = None
    merge_overrides: bool | None = None
    merge_default: bool | None = None
    avoid_duplicates: bool | None = None


class SmartClassParameterAPI:
    """Read, update and search for smart class parameters of one parent."""

    def __init__(self, client: ForemanClient, override_values: OverrideValueAPI) -> None:
        self.client = client
        self.override_values = override_values

    def _endpoint(self, p: ForemanSmartClassParameter, *suffix: int) -> str:
        if p.parent is None:
            raise RequestConstructionError("Smart class parameter has no parent")
        return self.client.endpoints.resolve(
            "parameters", *suffix, parent_kind=p.parent.kind, parent_id=p.parent.id
        )

    @staticmethod
    def _require_id(p: ForemanSmartClassParameter) -> int:
        if p.id is None:
            raise RequestConstructionError("Smart class parameter has no id")
        return p.id

    def read(
        self,
        parent: HostParent | HostGroupParent | EnvironmentParent,
        parameter_id: int,
    ) -> ForemanSmartClassParameter:
        target = ForemanSmartClassParameter(id=parameter_id, parent=parent)
        req = self.client.new_request("GET", self._endpoint(target, parameter_id))
        found = self.client.send_and_parse(req, ForemanSmartClassParameter)
        logger.debug("Read smart class parameter: %r", found)
        found.parent = parent
        return found

    def update(self, p: ForemanSmartClassParameter) -> ForemanSmartClassParameter:
        """Update ``p`` and replace its override values wholesale.

        Local and remote override values are not diffed: when
        ``p.override_values`` is set, every remote override value is deleted
        and the submitted list is recreated in order.
        """
        parameter_id = self._require_id(p)
        endpoint = self._endpoint(p, parameter_id)

        body = self.client.to_json(p)
        logger.debug("Update smart class parameter body: %s", body)
        req = self.client.new_request("PUT", endpoint, body=body)
        self.client.send_and_parse(req, ForemanSmartClassParameter)

        if p.override_values is not None:
            self._replace_override_values(p, parameter_id)

        assert p.parent is not None
        return self.read(p.parent, parameter_id)

    def _replace_override_values(self, p: ForemanSmartClassParameter, parameter_id: int) -> None:
        assert p.parent is not None and p.override_values is not None
        current = self.read(p.parent, parameter_id)
        for existing in current.override_values or []:
            if existing.id is not None:
                self.override_values.delete(parameter_id, existing.id)

        for ov in p.override_values:
            self.override_values.create(
                ForemanOverrideValue(
                    smart_class_parameter_id=parameter_id,
                    match=ov.match,
                    value=ov.value,
                    omit=ov.omit,
                )
            )
        logger.info(
            "Replaced override values of parameter %d: %d removed, %d created",
            parameter_id,
            len(current.override_values or []),
            len(p.override_values),
        )

    def query(self, p: ForemanSmartClassParameter) -> QueryResponse[ForemanSmartClassParameter]:
        """Search the parent's parameters by parameter name."""
        if p.parameter is None:
            raise RequestConstructionError("Smart class parameter search requires a name")
        req = self.client.new_request("GET", self._endpoint(p), params=name_search(p.parameter))
        response = self.client.send_and_parse(req, QueryResponse[ForemanSmartClassParameter])
        for result in response.results:
            result.parent = p.parent
        logger.debug("Smart class parameter query returned %d result(s)", response.count)
        return response
