"""Plans, planned changes and apply results."""

from __future__ import annotations

import json
from collections import Counter
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable

PLAN_FORMAT_VERSION = 1


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    NOOP = "no-op"

    @property
    def mutates(self) -> bool:
        """True for actions that write to Foreman."""
        return self in (Action.CREATE, Action.UPDATE, Action.DELETE)


def _count_actions(changes: Iterable[ResourceChange]) -> dict[str, int]:
    counts = Counter(c.action.value for c in changes)
    return {a.value: counts.get(a.value, 0) for a in Action}


class PlanMetadata(BaseModel):
    """What a plan was computed against; apply refuses a plan whose state moved on."""

    format_version: int = PLAN_FORMAT_VERSION
    host: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destroy: bool
    refresh: bool
    state_lineage: str
    state_serial: int
    state_digest: str
    engine_version: str


class ResourceChange(BaseModel):
    """One address in a plan.

    ``desired`` is the declared bag, ``prior`` the bag from state and
    ``planned`` what state should hold once the change is applied.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None

    @property
    def is_data_source(self) -> bool:
        return self.resource_type.startswith("data.")


class Plan(BaseModel):
    metadata: PlanMetadata
    changes: list[ResourceChange]

    def summary(self) -> dict[str, int]:
        return _count_actions(self.changes)

    def get(self, address: str) -> ResourceChange | None:
        return next((c for c in self.changes if c.address == address), None)

    def save(self, path: Path) -> None:
        """Write the plan as sorted, indented JSON so saved plans diff cleanly."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True)
        path.write_text(payload + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        plan = cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        if plan.metadata.format_version != PLAN_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported plan format version {plan.metadata.format_version} in {path}"
            )
        return plan


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return _count_actions(self.applied)
