"""Override value resource and data source models."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import BeforeValidator, Field, model_validator

from foreman_provisioner.api.override_value import as_text
from foreman_provisioner.resources.base import Resource


class OverrideValueResource(Resource):
    """An override of a smart class parameter's value for matching hosts.

    ``match`` is a Foreman matcher such as ``os=RedHat`` or
    ``hostgroup=web/prod``.
    """

    resource_type: ClassVar[str] = "foreman_override_value"

    smart_class_parameter_id: int = Field(gt=0)
    match: str = Field(min_length=1)
    value: Annotated[str, BeforeValidator(as_text)] = ""
    omit: bool | None = None

    @model_validator(mode="after")
    def _value_unless_omitted(self) -> OverrideValueResource:
        if not self.omit and self.value == "":
            raise ValueError("value is required unless omit is true")
        return self


class OverrideValueDataSource(Resource):
    """Looks up an existing override value by its match expression."""

    resource_type: ClassVar[str] = "data.foreman_override_value"
    plan_priority: ClassVar[int] = 0

    smart_class_parameter_id: int = Field(gt=0)
    match: str = Field(min_length=1)
