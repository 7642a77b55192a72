"""Maps resource type names to their model and handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from foreman_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from foreman_provisioner.engine.handlers import ResourceHandler
    from foreman_provisioner.resources.base import Resource

DATA_PREFIX = "data."


@dataclass(frozen=True)
class ResourceTypeRegistration:
    resource_type: str
    model: type[Resource]
    handler: ResourceHandler[Any]

    @property
    def is_data_source(self) -> bool:
        """Data sources are only ever read, never created or deleted."""
        return self.resource_type.startswith(DATA_PREFIX)


class ResourceTypeRegistry:
    """Lookup table used by the engine to dispatch on ``resource_type``.

    Type names are the model's ``resource_type`` classvar, e.g.
    ``foreman_override_value`` or ``data.foreman_override_value``.
    """

    def __init__(self) -> None:
        self._by_type: dict[str, ResourceTypeRegistration] = {}

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(model, "resource_type", None)
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError(f"{model.__name__} does not define a `resource_type` classvar")
        if resource_type.removeprefix(DATA_PREFIX).count(".") != 0:
            raise ValueError(f"Resource type may not contain '.': {resource_type}")
        if resource_type in self._by_type:
            raise ValueError(f"Resource type already registered: {resource_type}")
        self._by_type[resource_type] = ResourceTypeRegistration(resource_type, model, handler)

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        registration = self._by_type.get(resource_type)
        if registration is None:
            raise UnknownResourceTypeError(resource_type)
        return registration

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._by_type

    def __iter__(self) -> Iterator[ResourceTypeRegistration]:
        return iter(self._by_type[t] for t in self.types())

    def types(self) -> list[str]:
        return sorted(self._by_type)
