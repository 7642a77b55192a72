"""Plan/apply engine."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

from foreman_provisioner import __version__
from foreman_provisioner.core.state import State, canonical_json, compute_state_digest
from foreman_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    ResourceImportError,
    StalePlanError,
    StateHostMismatchError,
    ValidationError,
)
from foreman_provisioner.engine.graph import DependencyGraph
from foreman_provisioner.engine.handlers import EngineContext, PlanContext
from foreman_provisioner.engine.lock import StateLock
from foreman_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from foreman_provisioner.core import ForemanProvider
    from foreman_provisioner.core.state import ResourceInstance
    from foreman_provisioner.engine.registry import ResourceTypeRegistry
    from foreman_provisioner.resources.base import CompareStrategy, Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def _values_differ(desired: Any, prior: Any, *, strategy: CompareStrategy | None = None) -> bool:
    """Check whether a desired value differs from the stored one.

    - ``"set"``: lists are compared ignoring order (elements may be dicts).
    - ``"exact"``: strict equality.
    - ``"partial"`` (default): for dicts only keys present in *desired* are
      compared, so server-side defaults in *prior* do not show as drift.
    """
    if strategy == "set":
        if isinstance(desired, list) and isinstance(prior, list):
            return sorted(map(canonical_json, desired)) != sorted(map(canonical_json, prior))
        return desired != prior

    if strategy != "exact" and isinstance(desired, dict) and isinstance(prior, dict):
        return any(desired[k] != prior.get(k) for k in desired)
    return desired != prior


class ForemanEngine:
    """Terraform-like plan/apply engine for Foreman resources."""

    def __init__(
        self,
        *,
        provider: ForemanProvider,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._state_path = state_path
        self._registry = registry

    @property
    def host(self) -> str:
        return self._provider.host or self._provider.client.host

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider)

    def _load_state(self) -> State:
        state = State.load_or_create(self._state_path, host=self.host)
        if state.host != self.host:
            raise StateHostMismatchError(self.host, state.host)
        return state

    # -- refresh -----------------------------------------------------------

    def _refresh_state_in_place(self, state: State) -> bool:
        logger.debug("Refreshing %d resources from Foreman", len(state.resources))
        changed = False
        ctx = self._ctx()

        for address, inst in list(state.resources.items()):
            handler = self._registry.get(inst.resource_type).handler
            attrs = handler.read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists, removing from state", address)
                state.forget(address)
                changed = True
            elif state.observe(address, attrs):
                logger.debug("%s changed in Foreman", address)
                changed = True

        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Refresh state from Foreman. Returns ``(before, after)``."""
        with StateLock(self._state_path):
            state = self._load_state()
            before = state.model_copy(deep=True)
            if self._refresh_state_in_place(state) and persist:
                state.serial += 1
                state.save(self._state_path)
            return before, state

    # -- plan --------------------------------------------------------------

    def _validate(self, desired_by_addr: dict[str, Resource]) -> None:
        ctx = self._ctx()
        plan_ctx = PlanContext(desired_by_addr)
        errors: list[str] = []
        for r in desired_by_addr.values():
            handler = self._registry.get(r.resource_type).handler
            errors.extend(handler.validate(ctx, r))
            errors.extend(handler.validate_plan(ctx, r, plan_ctx))
            errors.extend(
                f"Resource '{r.address}' depends on unknown address '{dep}'"
                for dep in r.depends_on
                if not plan_ctx.address_exists(dep)
            )
        if errors:
            raise ValidationError(errors)

    def _classify_change(self, resource: Resource, state: State) -> ResourceChange:
        desired = resource.model_dump(exclude_none=True, exclude={"address"})
        planned = resource.attributes()
        is_data = self._registry.get(resource.resource_type).is_data_source

        prior_inst = state.resources.get(resource.address)
        if prior_inst is None:
            return ResourceChange(
                address=resource.address,
                resource_type=resource.resource_type,
                action=Action.READ if is_data else Action.CREATE,
                desired=desired,
                planned=planned,
            )

        prior = dict(prior_inst.attributes)
        diff = {
            k: {"from": prior.get(k), "to": v}
            for k, v in planned.items()
            if _values_differ(v, prior.get(k), strategy=resource.compare.get(k))
        }
        if not diff:
            action = Action.NOOP
        else:
            action = Action.READ if is_data else Action.UPDATE
        logger.debug("Classified %s as %s", resource.address, action.value)
        return ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=action,
            desired=desired,
            prior=prior,
            planned=planned,
            diff=diff or None,
        )

    def _plan_deletes(self, state: State, addrs: set[str]) -> list[ResourceChange]:
        priorities = {
            a: self._registry.get(state.resources[a].resource_type).model.plan_priority
            for a in addrs
        }
        deps = {a: state.resources[a].dependencies for a in addrs}
        order = DependencyGraph(addrs, deps, priorities=priorities).reverse_topological_order()
        return [
            ResourceChange(
                address=addr,
                resource_type=state.resources[addr].resource_type,
                action=Action.DELETE,
                prior=dict(state.resources[addr].attributes),
            )
            for addr in order
        ]

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        lock_cm = StateLock(self._state_path) if refresh else contextlib.nullcontext()
        with lock_cm:
            state = self._load_state()
            if refresh and self._refresh_state_in_place(state):
                state.serial += 1
                state.save(self._state_path)

            desired_by_addr: dict[str, Resource] = {}
            for r in resources:
                if r.address in desired_by_addr:
                    raise DuplicateAddressError(r.address)
                self._registry.get(r.resource_type)
                desired_by_addr[r.address] = r

            if destroy:
                changes = self._plan_deletes(state, set(state.resources))
            else:
                self._validate(desired_by_addr)
                order = DependencyGraph(
                    desired_by_addr,
                    {a: r.depends_on for a, r in desired_by_addr.items()},
                    priorities={a: r.plan_priority for a, r in desired_by_addr.items()},
                ).topological_order()
                changes = [self._classify_change(desired_by_addr[a], state) for a in order]
                changes.extend(self._plan_deletes(state, set(state.resources) - set(order)))

            metadata = PlanMetadata(
                host=self.host,
                destroy=destroy,
                refresh=refresh,
                state_lineage=state.lineage,
                state_serial=state.serial,
                state_digest=compute_state_digest(state),
                engine_version=__version__,
            )
            return Plan(metadata=metadata, changes=changes)

    # -- apply -------------------------------------------------------------

    def _apply_order(self, plan: Plan, state: State) -> list[ResourceChange]:
        """Creates/updates/reads in dependency order, then deletes in reverse."""
        upserts = {c.address: c for c in plan.changes if c.action not in (Action.NOOP, Action.DELETE)}
        deletes = {c.address: c for c in plan.changes if c.action == Action.DELETE}

        def priority(c: ResourceChange) -> int:
            return self._registry.get(c.resource_type).model.plan_priority

        upsert_order = DependencyGraph(
            upserts,
            {a: (c.desired or {}).get("depends_on", []) for a, c in upserts.items()},
            priorities={a: priority(c) for a, c in upserts.items()},
        ).topological_order()
        delete_order = DependencyGraph(
            deletes,
            {a: state.resources[a].dependencies for a in deletes if a in state.resources},
            priorities={a: priority(c) for a, c in deletes.items()},
        ).reverse_topological_order()
        return [upserts[a] for a in upsert_order] + [deletes[a] for a in delete_order]

    def _apply_change(self, change: ResourceChange, state: State) -> None:
        reg = self._registry.get(change.resource_type)
        ctx = self._ctx()

        if change.action == Action.DELETE:
            prior_inst = state.resources.get(change.address)
            if prior_inst is None:
                raise ValueError(f"Missing state for delete: {change.address}")
            reg.handler.delete(ctx, prior_inst)
            state.forget(change.address)
            return

        if change.desired is None:
            raise ValueError(f"Missing desired config for {change.action.value}: {change.address}")
        desired = reg.model.model_validate(change.desired)
        prior_inst = state.resources.get(change.address)
        if prior_inst is None:
            attrs = reg.handler.create(ctx, desired)
        else:
            attrs = reg.handler.update(ctx, desired, prior_inst)

        state.record(
            change.address, change.resource_type, desired.name, attrs, desired.depends_on
        )

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with StateLock(self._state_path):
            if self._state_path.exists():
                state = self._load_state()
            else:
                # Saved plan against an empty workspace: bootstrap from its metadata.
                state = State(
                    host=self.host,
                    lineage=plan.metadata.state_lineage,
                    serial=plan.metadata.state_serial,
                )
            if plan.metadata.host != self.host:
                raise StateHostMismatchError(self.host, plan.metadata.host)
            for what, planned, current in (
                ("lineage", plan.metadata.state_lineage, state.lineage),
                ("serial", plan.metadata.state_serial, state.serial),
                ("digest", plan.metadata.state_digest, compute_state_digest(state)),
            ):
                if planned != current:
                    raise StalePlanError(what, planned=planned, current=current)

            ordered = self._apply_order(plan, state)
            logger.info("Applying %d changes", len(ordered))
            applied: list[ResourceChange] = []
            change: ResourceChange | None = None
            try:
                for change in ordered:
                    logger.debug("Applying %s: %s", change.address, change.action.value)
                    if progress:
                        progress(change, "start")
                    self._apply_change(change, state)
                    state.serial += 1
                    state.save(self._state_path)
                    applied.append(change)
                    if progress:
                        progress(change, "done")
            except KeyboardInterrupt as e:  # pragma: no cover
                raise ApplyCanceled("Apply canceled") from e
            except Exception as e:
                address = change.address if change is not None else "<plan>"
                raise ApplyError(applied=applied, address=address, message=str(e)) from e

            return ApplyResult(applied=applied)

    # -- import ------------------------------------------------------------

    def import_resource(self, address: str, import_id: str) -> ResourceInstance:
        """Bring an existing Foreman object under management at ``address``."""
        resource_type, sep, name = address.rpartition(".")
        if not sep or not resource_type or not name:
            raise ResourceImportError(f"Invalid address '{address}', expected <type>.<name>")
        reg = self._registry.get(resource_type)
        if reg.is_data_source:
            raise ResourceImportError(f"Data sources cannot be imported: {address}")

        with StateLock(self._state_path):
            state = self._load_state()
            if address in state.resources:
                raise ResourceImportError(f"{address} is already managed")

            attrs = reg.handler.import_state(self._ctx(), name, import_id)
            inst = state.record(address, resource_type, name, attrs)
            state.serial += 1
            state.save(self._state_path)
            logger.info("Imported %s from %s", address, import_id)
            return inst
