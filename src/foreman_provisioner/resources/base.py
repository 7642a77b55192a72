"""Base resource class for Foreman resources."""

from typing import ClassVar, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, computed_field

CompareStrategy: TypeAlias = Literal["partial", "exact", "set"]


class Resource(BaseModel):
    """Base class for all declared Foreman objects.

    Resources are pure data: they describe the desired state. Handlers know
    how to read and write them through the Foreman API.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    plan_priority: ClassVar[int] = 100
    # Per-field comparison strategy used when planning (default: "partial")
    compare: ClassVar[dict[str, CompareStrategy]] = {}

    name: str = Field(pattern=r"^[a-zA-Z0-9_]+$")

    # Lifecycle
    depends_on: list[str] = []

    @computed_field
    @property
    def address(self) -> str:
        """Unique address, e.g. ``foreman_override_value.ntp_dc1``."""
        return f"{self.resource_type}.{self.name}"

    def attributes(self) -> dict[str, object]:
        """Declared attributes as an attribute bag (unset fields left out)."""
        return self.model_dump(exclude_none=True, exclude={"address", "depends_on"})
