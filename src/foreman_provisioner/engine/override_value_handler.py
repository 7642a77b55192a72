"""Override value handlers: attribute bag <-> ForemanOverrideValue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from foreman_provisioner.api.errors import NotFoundError, RequestConstructionError
from foreman_provisioner.api.override_value import ForemanOverrideValue
from foreman_provisioner.engine.errors import ResourceImportError
from foreman_provisioner.engine.handlers import ResourceHandler

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping

    from foreman_provisioner.api.override_value import OverrideValueAPI
    from foreman_provisioner.core.state import ResourceInstance
    from foreman_provisioner.engine.handlers import EngineContext, PlanContext
    from foreman_provisioner.resources.override_value import (
        OverrideValueDataSource,
        OverrideValueResource,
    )

logger = logging.getLogger(__name__)

_CONTENT_KEYS = ("match", "value", "omit")


def build_override_value(attrs: Mapping[str, Any]) -> ForemanOverrideValue:
    """Build an API model from an attribute bag.

    Only keys present in the bag are set; everything else stays ``None``.
    """
    fields = {k: attrs[k] for k in ("smart_class_parameter_id", *_CONTENT_KEYS) if k in attrs}
    if attrs.get("id") not in (None, ""):
        fields["id"] = attrs["id"]
    try:
        return ForemanOverrideValue.model_validate(fields)
    except ValidationError as e:
        raise RequestConstructionError(f"Invalid override value attributes: {e}") from e


def set_attributes_from_override_value(
    attrs: MutableMapping[str, Any], ov: ForemanOverrideValue
) -> None:
    """Write the model's id (as a string) and set attributes into the bag."""
    attrs["id"] = str(ov.id)
    if ov.smart_class_parameter_id is not None:
        attrs["smart_class_parameter_id"] = ov.smart_class_parameter_id
    for key in _CONTENT_KEYS:
        value = getattr(ov, key)
        if value is not None:
            attrs[key] = value


def _attrs(name: str, ov: ForemanOverrideValue) -> dict[str, Any]:
    attrs: dict[str, Any] = {"name": name}
    set_attributes_from_override_value(attrs, ov)
    return attrs


def _api(ctx: EngineContext) -> OverrideValueAPI:
    return ctx.provider.override_values


class OverrideValueHandler(ResourceHandler["OverrideValueResource"]):
    """CRUD handler for override values."""

    def validate_plan(
        self, ctx: EngineContext, desired: OverrideValueResource, plan_ctx: PlanContext
    ) -> list[str]:
        _ = ctx
        errors: list[str] = []
        for other in plan_ctx.of_type("foreman_smart_class_parameter"):
            if (
                getattr(other, "parameter_id", None) == desired.smart_class_parameter_id
                and getattr(other, "override_values", None) is not None
            ):
                errors.append(
                    f"{desired.address} targets parameter {desired.smart_class_parameter_id}, "
                    f"whose override values are managed inline by {other.address}"
                )
        return errors

    def create(self, ctx: EngineContext, desired: OverrideValueResource) -> dict[str, Any]:
        ov = build_override_value(desired.attributes())
        created = _api(ctx).create(ov)
        logger.info(
            "Created override value %s on parameter %s", created.id, ov.smart_class_parameter_id
        )
        return _attrs(desired.name, created)

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        ov = build_override_value(prior.attributes)
        if ov.id is None or ov.smart_class_parameter_id is None:
            return None
        try:
            found = _api(ctx).read(ov.smart_class_parameter_id, ov.id)
        except NotFoundError:
            logger.debug("Override value %s no longer exists", prior.address)
            return None
        return _attrs(prior.name, found)

    def update(
        self, ctx: EngineContext, desired: OverrideValueResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        prior_ov = build_override_value(prior.attributes)
        if prior_ov.smart_class_parameter_id != desired.smart_class_parameter_id:
            # Override values cannot move between parameters: replace it.
            self.delete(ctx, prior)
            return self.create(ctx, desired)

        ov = build_override_value({**desired.attributes(), "id": prior.attributes.get("id")})
        updated = _api(ctx).update(ov)
        return _attrs(desired.name, updated)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        ov = build_override_value(prior.attributes)
        if ov.id is None or ov.smart_class_parameter_id is None:
            raise RequestConstructionError(f"{prior.address} has no id in state")
        _api(ctx).delete(ov.smart_class_parameter_id, ov.id)

    def import_state(self, ctx: EngineContext, name: str, import_id: str) -> dict[str, Any]:
        """Import ``<smart_class_parameter_id>/<override_value_id>``."""
        parts = import_id.strip("/").split("/")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ResourceImportError(
                f"Invalid override value import id '{import_id}', "
                "expected <smart_class_parameter_id>/<override_value_id>"
            )
        found = _api(ctx).read(int(parts[0]), int(parts[1]))
        return _attrs(name, found)


class OverrideValueDataHandler(ResourceHandler["OverrideValueDataSource"]):
    """Data source resolving exactly one override value by match expression."""

    def _lookup(self, ctx: EngineContext, name: str, attrs: Mapping[str, Any]) -> dict[str, Any]:
        query = build_override_value(
            {k: attrs[k] for k in ("smart_class_parameter_id", "match") if k in attrs}
        )
        found = _api(ctx).query(query).one("override_value")
        return _attrs(name, found)

    def create(self, ctx: EngineContext, desired: OverrideValueDataSource) -> dict[str, Any]:
        return self._lookup(ctx, desired.name, desired.attributes())

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        return self._lookup(ctx, prior.name, prior.attributes)

    def update(
        self, ctx: EngineContext, desired: OverrideValueDataSource, prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = prior
        return self.create(ctx, desired)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        _ = ctx, prior
