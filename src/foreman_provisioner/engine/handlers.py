"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from foreman_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from collections.abc import Mapping

    from foreman_provisioner.core import ForemanProvider
    from foreman_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Context passed to handlers."""

    provider: ForemanProvider


class PlanContext:
    """All resources declared in the configuration, for cross-resource validation."""

    def __init__(self, all_desired: Mapping[str, Resource]) -> None:
        self._desired = dict(all_desired)

    def address_exists(self, address: str) -> bool:
        return address in self._desired

    def of_type(self, resource_type: str) -> list[Resource]:
        """Declared resources of ``resource_type``, in address order."""
        return [r for _, r in sorted(self._desired.items()) if r.resource_type == resource_type]


class ResourceHandler(Generic[R]):
    """Base class for resource handlers.

    Handlers translate between a resource's attribute bag and Foreman API
    calls. Every CRUD method returns the attribute bag to store in state.
    Validation methods and import are optional.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Single-resource validation. Return error messages (empty = valid)."""
        _ = ctx, desired
        return []

    def validate_plan(self, ctx: EngineContext, desired: R, plan_ctx: PlanContext) -> list[str]:
        """Cross-resource validation. Return error messages (empty = valid)."""
        _ = ctx, desired, plan_ctx
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Read the object from Foreman. Return None if it no longer exists."""
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        raise NotImplementedError

    def import_state(self, ctx: EngineContext, name: str, import_id: str) -> dict[str, Any]:
        """Read an existing object identified by ``import_id`` into an attribute bag."""
        _ = ctx, import_id
        raise NotImplementedError(f"Import is not supported for '{name}'")
