"""Smart class parameter resource and data source models."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from foreman_provisioner.api.errors import RequestConstructionError
from foreman_provisioner.api.override_value import Text, as_text
from foreman_provisioner.api.smart_class_parameter import (
    EnvironmentParent,
    HostGroupParent,
    HostParent,
    parent_from_ids,
)
from foreman_provisioner.resources.base import CompareStrategy, Resource


class OverrideValueEntry(BaseModel):
    """An override value managed inline on its smart class parameter."""

    model_config = ConfigDict(extra="forbid")

    match: str = Field(min_length=1)
    value: Annotated[str, BeforeValidator(as_text)] = ""
    omit: bool = False


class ParentScopedResource(Resource):
    """Resource addressed under exactly one host, host group or environment."""

    host_id: int | None = None
    hostgroup_id: int | None = None
    environment_id: int | None = None

    @model_validator(mode="after")
    def _exactly_one_parent(self) -> ParentScopedResource:
        try:
            self.parent()
        except RequestConstructionError as e:
            raise ValueError(str(e)) from e
        return self

    def parent(self) -> HostParent | HostGroupParent | EnvironmentParent:
        return parent_from_ids(
            host_id=self.host_id,
            hostgroup_id=self.hostgroup_id,
            environment_id=self.environment_id,
        )


class SmartClassParameterResource(ParentScopedResource):
    """A smart class parameter brought under management.

    The parameter must already exist (Puppet class import creates it);
    applying adopts and updates it, destroying only stops managing it.
    Fields left unset keep whatever value Foreman has.

    ``override_values``, when set, is authoritative: the remote list is
    replaced with exactly these entries on every update.
    """

    resource_type: ClassVar[str] = "foreman_smart_class_parameter"
    plan_priority: ClassVar[int] = 50
    compare: ClassVar[dict[str, CompareStrategy]] = {"override_values": "set"}

    parameter_id: int = Field(gt=0)

    override: bool | None = None
    description: str | None = None
    default_value: Text = None
    hidden_value: bool | None = None
    omit: bool | None = None
    path: str | None = None
    validator_type: str | None = None
    validator_rule: str | None = None
    override_values: list[OverrideValueEntry] | None = None
    override_value_order: str | None = None
    parameter_type: str | None = None
    required: bool | None = None
    merge_overrides: bool | None = None
    merge_default: bool | None = None
    avoid_duplicates: bool | None = None


class SmartClassParameterDataSource(ParentScopedResource):
    """Looks up an existing smart class parameter by name."""

    resource_type: ClassVar[str] = "data.foreman_smart_class_parameter"
    plan_priority: ClassVar[int] = 0

    parameter: str = Field(min_length=1)
