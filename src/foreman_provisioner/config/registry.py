"""Default resource type registry factory."""

from __future__ import annotations

from foreman_provisioner.engine.override_value_handler import (
    OverrideValueDataHandler,
    OverrideValueHandler,
)
from foreman_provisioner.engine.registry import ResourceTypeRegistry
from foreman_provisioner.engine.smart_class_parameter_handler import (
    SmartClassParameterDataHandler,
    SmartClassParameterHandler,
)
from foreman_provisioner.resources.override_value import (
    OverrideValueDataSource,
    OverrideValueResource,
)
from foreman_provisioner.resources.smart_class_parameter import (
    SmartClassParameterDataSource,
    SmartClassParameterResource,
)


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()

    registry.register(OverrideValueResource, OverrideValueHandler())
    registry.register(SmartClassParameterResource, SmartClassParameterHandler())

    registry.register(OverrideValueDataSource, OverrideValueDataHandler())
    registry.register(SmartClassParameterDataSource, SmartClassParameterDataHandler())

    return registry
