"""Python API: load a configuration, then plan, apply, refresh or import.

Typical use::

    from foreman_provisioner import config

    cfg = config.load("foreman-provisioner.yaml")
    plan = config.plan(cfg)
    config.apply(plan, cfg)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import SecretStr

from foreman_provisioner.config.loader import ConfigError, load_config
from foreman_provisioner.config.registry import default_registry
from foreman_provisioner.config.schema import Config, DataConfig, ProviderConfig
from foreman_provisioner.core.provider import BasicAuth, ForemanProvider
from foreman_provisioner.core.state import ResourceInstance, State
from foreman_provisioner.engine.engine import ForemanEngine, ProgressCallback
from foreman_provisioner.engine.errors import StateHostMismatchError
from foreman_provisioner.engine.lock import StateLock
from foreman_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from foreman_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "DataConfig",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "import_resource",
    "load",
    "load_config",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
    "show",
]

_REQUIRED_PROVIDER_FIELDS = (
    ("host", "FOREMAN_HOST"),
    ("username", "FOREMAN_USERNAME"),
    ("password", "FOREMAN_PASSWORD"),
)


def load(path: Path | str) -> Config:
    return load_config(path)


def _engine_from_config(config: Config) -> ForemanEngine:
    p = config.provider
    missing = [
        f"provider.{field} (or {env})"
        for field, env in _REQUIRED_PROVIDER_FIELDS
        if not getattr(p, field)
    ]
    if missing:
        raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")

    provider = ForemanProvider(
        host=p.host,
        auth=BasicAuth(username=p.username, password=SecretStr(p.password)),
        verify_ssl=p.verify_ssl,
        timeout=p.timeout,
        endpoints=config.endpoints,
    )
    return ForemanEngine(
        provider=provider,
        state_path=config.state_path,
        registry=default_registry(),
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    """Compute the changes needed to make Foreman match ``config``."""
    return _engine_from_config(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    """Apply ``plan_obj``; it must have been computed against the current state."""
    return _engine_from_config(config).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    return apply(plan(config, destroy=destroy, refresh=refresh), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Read every managed object back from Foreman.

    Returns the drift and the refreshed state. Nothing is written; pass the
    state to :func:`save_state` to keep it.
    """
    before, after = _engine_from_config(config).refresh()
    return _drift_changes(before, after), after


def save_state(config: Config, state: State) -> None:
    """Write ``state`` (typically from :func:`refresh`) as the next serial."""
    host = config.provider.host
    if host and state.host != host:
        raise StateHostMismatchError(host, state.host)
    with StateLock(config.state_path):
        state.serial += 1
        state.save(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    """Objects changed or removed in Foreman since the state was written."""
    changes, _ = refresh(config)
    return changes


def import_resource(config: Config, address: str, import_id: str) -> ResourceInstance:
    """Record an existing Foreman object under ``address`` (see ``ForemanEngine``)."""
    return _engine_from_config(config).import_resource(address, import_id)


def show(config: Config) -> State:
    """The recorded state, read without contacting Foreman.

    Empty when nothing has been applied yet.
    """
    if not config.state_path.exists():
        return State(host=config.provider.host or "")
    return State.load(config.state_path)


def _attribute_diff(old: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    return {
        k: {"from": old.get(k), "to": new.get(k)}
        for k in sorted(old.keys() | new.keys())
        if old.get(k) != new.get(k)
    }


def _drift_changes(before: State, after: State) -> list[ResourceChange]:
    """UPDATE for objects whose attributes moved, DELETE for objects now gone."""
    changes: list[ResourceChange] = []
    for address in sorted(before.resources):
        old = before.resources[address]
        new = after.resources.get(address)
        if new is None:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=old.resource_type,
                    action=Action.DELETE,
                    prior=dict(old.attributes),
                )
            )
        elif new.attributes != old.attributes:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=new.resource_type,
                    action=Action.UPDATE,
                    prior=dict(old.attributes),
                    planned=dict(new.attributes),
                    diff=_attribute_diff(old.attributes, new.attributes),
                )
            )
    return changes
