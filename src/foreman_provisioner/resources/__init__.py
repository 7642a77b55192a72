"""Foreman resource definitions."""

from foreman_provisioner.resources.base import Resource
from foreman_provisioner.resources.override_value import (
    OverrideValueDataSource,
    OverrideValueResource,
)
from foreman_provisioner.resources.smart_class_parameter import (
    OverrideValueEntry,
    ParentScopedResource,
    SmartClassParameterDataSource,
    SmartClassParameterResource,
)

__all__ = [
    "OverrideValueDataSource",
    "OverrideValueEntry",
    "OverrideValueResource",
    "ParentScopedResource",
    "Resource",
    "SmartClassParameterDataSource",
    "SmartClassParameterResource",
]
