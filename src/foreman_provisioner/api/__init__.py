"""Foreman REST API models and CRUD operations."""

from foreman_provisioner.api.client import Endpoints, ForemanClient
from foreman_provisioner.api.errors import (
    DecodeError,
    DomainError,
    ForemanError,
    NotFoundError,
    RequestConstructionError,
    TransportError,
)
from foreman_provisioner.api.override_value import ForemanOverrideValue, OverrideValueAPI
from foreman_provisioner.api.query import QueryResponse, name_search
from foreman_provisioner.api.smart_class_parameter import (
    EnvironmentParent,
    ForemanSmartClassParameter,
    HostGroupParent,
    HostParent,
    ParameterParent,
    SmartClassOverrideValue,
    SmartClassParameterAPI,
    parent_from_ids,
    parent_from_kind,
)

__all__ = [
    "DecodeError",
    "DomainError",
    "Endpoints",
    "EnvironmentParent",
    "ForemanClient",
    "ForemanError",
    "ForemanOverrideValue",
    "ForemanSmartClassParameter",
    "HostGroupParent",
    "HostParent",
    "NotFoundError",
    "OverrideValueAPI",
    "ParameterParent",
    "QueryResponse",
    "RequestConstructionError",
    "SmartClassOverrideValue",
    "SmartClassParameterAPI",
    "TransportError",
    "name_search",
    "parent_from_ids",
    "parent_from_kind",
]
