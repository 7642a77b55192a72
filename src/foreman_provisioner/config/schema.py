"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from foreman_provisioner.api.client import Endpoints
from foreman_provisioner.resources.base import Resource  # noqa: TC001 - Pydantic needs this at runtime
from foreman_provisioner.resources.override_value import (
    OverrideValueDataSource,
    OverrideValueResource,
)
from foreman_provisioner.resources.smart_class_parameter import (
    SmartClassParameterDataSource,
    SmartClassParameterResource,
)


class ProviderConfig(BaseSettings):
    """Foreman provider connection settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``FOREMAN_`` prefix.  Constructor kwargs take precedence.

    ``password`` is typically provided via the ``FOREMAN_PASSWORD`` environment
    variable rather than YAML to avoid committing secrets to version control.
    """

    model_config = SettingsConfigDict(env_prefix="FOREMAN_")

    host: str | None = None
    username: str | None = None
    password: str | None = None
    verify_ssl: bool = True
    timeout: float | None = None


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


class DataConfig(BaseModel):
    """Read-only lookups declared under the ``data`` section."""

    model_config = ConfigDict(extra="forbid")

    override_values: Annotated[
        list[OverrideValueDataSource], BeforeValidator(_none_to_list)
    ] = []
    smart_class_parameters: Annotated[
        list[SmartClassParameterDataSource], BeforeValidator(_none_to_list)
    ] = []


class Config(BaseModel):
    """Provisioning configuration, validated straight from YAML."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig
    state_path: Path = Path(".foreman-state.json")
    endpoints: Endpoints = Endpoints()
    smart_class_parameters: Annotated[
        list[SmartClassParameterResource], BeforeValidator(_none_to_list)
    ] = []
    override_values: Annotated[list[OverrideValueResource], BeforeValidator(_none_to_list)] = []
    data: Annotated[DataConfig, BeforeValidator(lambda v: v if v is not None else {})] = (
        DataConfig()
    )
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        """All declared resources and data sources; ordering is not significant."""
        return [
            *self.data.override_values,
            *self.data.smart_class_parameters,
            *self.smart_class_parameters,
            *self.override_values,
        ]
