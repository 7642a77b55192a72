"""Errors raised while planning, applying and importing."""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base exception for engine errors."""


class UnknownResourceTypeError(EngineError):
    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unknown resource type: {resource_type}")
        self.resource_type = resource_type


class DuplicateAddressError(EngineError):
    """Two declared resources resolve to the same ``<type>.<name>``."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Duplicate resource address: {address}")
        self.address = address


class DependencyCycleError(EngineError):
    """``depends_on`` edges form a cycle between ``addresses``."""

    def __init__(self, addresses: list[str]) -> None:
        cycle = f": {', '.join(addresses)}" if addresses else ""
        super().__init__(f"Dependency cycle detected{cycle}")
        self.addresses = addresses


class StateHostMismatchError(EngineError):
    """The state file (or a saved plan) was written for another Foreman server."""

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"State host mismatch: expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class StalePlanError(EngineError):
    """The state changed between ``plan`` and ``apply``.

    ``what`` names the state property that moved: ``lineage``, ``serial``
    or ``digest``.
    """

    def __init__(self, what: str, *, planned: Any, current: Any) -> None:
        def short(v: Any) -> str:
            return str(v)[:12]

        super().__init__(
            f"State {what} changed since the plan was made "
            f"({short(planned)} -> {short(current)}); re-run plan"
        )
        self.what = what
        self.planned = planned
        self.current = current


class StateLockError(EngineError):
    """The ``<state>.lock`` file could not be locked."""


class ResourceImportError(EngineError):
    """An import address or id was rejected."""


class ValidationError(EngineError):
    """Declared resources failed validation; ``errors`` lists every problem."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


class ApplyError(EngineError):
    """An apply stopped at ``address``.

    ``result`` holds the changes applied (and saved to state) before the
    failure; the underlying exception is chained via ``__cause__``.
    """

    def __init__(self, *, applied: list[Any], address: str, message: str) -> None:
        from foreman_provisioner.engine.types import ApplyResult

        self.result = ApplyResult(applied=applied)
        self.address = address
        super().__init__(f"Apply failed on {address}: {message}")


class ApplyCanceled(EngineError):
    """Apply interrupted with Ctrl-C; completed changes are already in state."""
