"""Exception to stderr message mapping for the CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from foreman_provisioner.api.errors import (
    DecodeError,
    DomainError,
    ForemanError,
    NotFoundError,
    RequestConstructionError,
    TransportError,
)
from foreman_provisioner.config.loader import ConfigError
from foreman_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    EngineError,
    ResourceImportError,
    StalePlanError,
    StateHostMismatchError,
    StateLockError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


def _transport(exc: TransportError) -> list[str]:
    if exc.status_code is None:
        return [f"Cannot reach Foreman: {exc}"]
    hint = {401: " (check username and password)", 403: " (permission denied)"}.get(
        exc.status_code, ""
    )
    return [f"Foreman request failed (HTTP {exc.status_code}){hint}: {exc}"]


def _apply_failed(exc: ApplyError) -> list[str]:
    lines = [f"Apply failed: {exc}"]
    s = exc.result.summary()
    done = [
        f"{s[action]} {verb}"
        for action, verb in (("create", "added"), ("update", "changed"), ("delete", "destroyed"))
        if s[action]
    ]
    if done:
        lines.append(f"  Partial result: {', '.join(done)}.")
    return lines


def _validation(exc: ValidationError) -> list[str]:
    return ["Validation failed:", *(f"  - {e}" for e in exc.errors)]


# First match wins; subclasses come before their bases.
_MESSAGES: list[tuple[type[Exception], Callable[..., list[str]]]] = [
    (ConfigError, lambda e: [f"Configuration error: {e}"]),
    (ValidationError, _validation),
    (StalePlanError, lambda e: [f"Plan is stale: {e}", "  Run 'plan' again."]),
    (StateHostMismatchError, lambda e: [f"State mismatch: {e}"]),
    (StateLockError, lambda e: [f"State locked: {e}"]),
    (ResourceImportError, lambda e: [f"Import failed: {e}"]),
    (ApplyError, _apply_failed),
    (ApplyCanceled, lambda _e: ["Apply canceled."]),
    (EngineError, lambda e: [f"Error: {e}"]),
    (NotFoundError, lambda e: [f"Foreman object not found: {e}"]),
    (TransportError, _transport),
    (DecodeError, lambda e: [f"Unexpected response from Foreman: {e}"]),
    (RequestConstructionError, lambda e: [f"Invalid request: {e}"]),
    (DomainError, lambda e: [f"Foreman error: {e}"]),
    (ForemanError, lambda e: [f"Foreman error: {e}"]),
]


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print ``exc`` to stderr without a traceback and return the exit code (always 1)."""
    render = next(
        (fn for exc_type, fn in _MESSAGES if isinstance(exc, exc_type)),
        lambda e: [f"Error: {e}"],
    )
    fg = typer.colors.RED if color else None
    for line in render(exc):
        typer.echo(typer.style(line, fg=fg), err=True)
    return 1
