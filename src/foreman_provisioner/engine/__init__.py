"""Plan and apply engine for Foreman resources."""

from foreman_provisioner.engine.engine import ForemanEngine
from foreman_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    ResourceImportError,
    StalePlanError,
    StateHostMismatchError,
    StateLockError,
    UnknownResourceTypeError,
    ValidationError,
)
from foreman_provisioner.engine.handlers import EngineContext, PlanContext, ResourceHandler
from foreman_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from foreman_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "ForemanEngine",
    "Plan",
    "PlanContext",
    "PlanMetadata",
    "ResourceChange",
    "ResourceHandler",
    "ResourceImportError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateHostMismatchError",
    "StateLockError",
    "UnknownResourceTypeError",
    "ValidationError",
]
