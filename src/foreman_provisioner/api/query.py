"""Typed decoding of Foreman search responses."""

from __future__ import annotations

from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, Field

from foreman_provisioner.api.errors import DomainError

T = TypeVar("T", bound=BaseModel)


def _flatten_results(v: Any) -> Any:
    # Some index endpoints group results by puppet class: {"ntp": [{...}], ...}
    if isinstance(v, dict):
        return [item for group in v.values() for item in (group or [])]
    return v if v is not None else []


class QueryResponse(BaseModel, Generic[T]):
    """Search response envelope with ``results`` decoded straight into ``T``."""

    total: int | None = None
    subtotal: int | None = None
    page: int | None = None
    per_page: int | None = None
    search: str | None = None
    results: Annotated[list[T], BeforeValidator(_flatten_results)] = Field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of matches reported by the server (falls back to the page length)."""
        return self.subtotal if self.subtotal is not None else len(self.results)

    def one(self, kind: str) -> T:
        """Return the single match, or raise ``DomainError`` for zero or several."""
        if self.count == 0 or not self.results:
            raise DomainError(f"Data source {kind} returned no results")
        if self.count > 1 or len(self.results) > 1:
            raise DomainError(f"Data source {kind} returned more than 1 result")
        return self.results[0]


def name_search(value: str) -> dict[str, str]:
    """Query parameters for an exact-name search: ``search=name="<value>"``."""
    return {"search": f'name="{value}"'}
