"""Smart class parameter handlers: attribute bag <-> ForemanSmartClassParameter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from foreman_provisioner.api.errors import DomainError, NotFoundError, RequestConstructionError
from foreman_provisioner.api.smart_class_parameter import (
    ForemanSmartClassParameter,
    parent_from_ids,
    parent_from_kind,
)
from foreman_provisioner.engine.errors import ResourceImportError
from foreman_provisioner.engine.handlers import ResourceHandler

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping

    from foreman_provisioner.api.smart_class_parameter import SmartClassParameterAPI
    from foreman_provisioner.core.state import ResourceInstance
    from foreman_provisioner.engine.handlers import EngineContext
    from foreman_provisioner.resources.smart_class_parameter import (
        SmartClassParameterDataSource,
        SmartClassParameterResource,
    )

logger = logging.getLogger(__name__)

_CONTENT_KEYS = (
    "override",
    "description",
    "default_value",
    "hidden_value",
    "omit",
    "path",
    "validator_type",
    "validator_rule",
    "override_values",
    "override_value_order",
    "parameter_type",
    "required",
    "merge_overrides",
    "merge_default",
    "avoid_duplicates",
)

# Parent kind (URL segment) -> attribute bag key
_PARENT_KEYS = {
    "hosts": "host_id",
    "hostgroups": "hostgroup_id",
    "environments": "environment_id",
}


def build_smart_class_parameter(attrs: Mapping[str, Any]) -> ForemanSmartClassParameter:
    """Build an API model from an attribute bag.

    Only keys present in the bag are set; the parent comes from whichever of
    ``host_id``/``hostgroup_id``/``environment_id`` is present (exactly one).
    """
    fields = {k: attrs[k] for k in _CONTENT_KEYS if k in attrs}
    try:
        p = ForemanSmartClassParameter.model_validate(fields)
    except ValidationError as e:
        raise RequestConstructionError(f"Invalid smart class parameter attributes: {e}") from e

    raw_id = attrs.get("id") or attrs.get("parameter_id")
    if raw_id not in (None, ""):
        p.id = int(raw_id)
    p.parameter = attrs.get("parameter")
    p.parent = parent_from_ids(**{key: attrs.get(key) for key in _PARENT_KEYS.values()})
    return p


def set_attributes_from_smart_class_parameter(
    attrs: MutableMapping[str, Any], p: ForemanSmartClassParameter
) -> None:
    """Write the model's identity and every set attribute into the bag."""
    attrs["id"] = str(p.id)
    attrs["parameter_id"] = p.id
    if p.parent is not None:
        attrs[_PARENT_KEYS[p.parent.kind]] = p.parent.id
    if p.parameter is not None:
        attrs["parameter"] = p.parameter

    for key in _CONTENT_KEYS:
        value = getattr(p, key)
        if value is None:
            continue
        if key == "override_values":
            value = [
                {"match": ov.match, "value": ov.value or "", "omit": ov.omit} for ov in value
            ]
        attrs[key] = value


def _attrs(name: str, p: ForemanSmartClassParameter) -> dict[str, Any]:
    attrs: dict[str, Any] = {"name": name}
    set_attributes_from_smart_class_parameter(attrs, p)
    return attrs


def _api(ctx: EngineContext) -> SmartClassParameterAPI:
    return ctx.provider.smart_class_parameters


class SmartClassParameterHandler(ResourceHandler["SmartClassParameterResource"]):
    """Read/update handler for smart class parameters.

    Foreman cannot create or delete smart class parameters. Creating the
    resource adopts the existing parameter and applies the declared
    attributes; deleting it only removes it from state.
    """

    def create(self, ctx: EngineContext, desired: SmartClassParameterResource) -> dict[str, Any]:
        p = build_smart_class_parameter(desired.attributes())
        try:
            updated = _api(ctx).update(p)
        except NotFoundError as e:
            raise DomainError(
                f"Smart class parameter {desired.parameter_id} does not exist under "
                f"{desired.parent().kind}/{desired.parent().id}; smart class parameters "
                "are created by Puppet class import, not by this tool"
            ) from e
        logger.info("Adopted smart class parameter %s (%s)", updated.id, updated.parameter)
        return _attrs(desired.name, updated)

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        p = build_smart_class_parameter(prior.attributes)
        if p.id is None or p.parent is None:
            return None
        try:
            found = _api(ctx).read(p.parent, p.id)
        except NotFoundError:
            logger.debug("Smart class parameter %s no longer exists", prior.address)
            return None
        return _attrs(prior.name, found)

    def update(
        self,
        ctx: EngineContext,
        desired: SmartClassParameterResource,
        prior: ResourceInstance,
    ) -> dict[str, Any]:
        _ = prior
        p = build_smart_class_parameter(desired.attributes())
        return _attrs(desired.name, _api(ctx).update(p))

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        _ = ctx
        logger.info(
            "Released %s from management; smart class parameters are not deleted",
            prior.address,
        )

    def import_state(self, ctx: EngineContext, name: str, import_id: str) -> dict[str, Any]:
        """Import ``<hosts|hostgroups|environments>/<parent_id>/<parameter_id>``."""
        parts = import_id.strip("/").split("/")
        if len(parts) != 3 or not (parts[1].isdigit() and parts[2].isdigit()):
            raise ResourceImportError(
                f"Invalid smart class parameter import id '{import_id}', "
                "expected <hosts|hostgroups|environments>/<parent_id>/<parameter_id>"
            )
        parent = parent_from_kind(parts[0], int(parts[1]))
        return _attrs(name, _api(ctx).read(parent, int(parts[2])))


class SmartClassParameterDataHandler(ResourceHandler["SmartClassParameterDataSource"]):
    """Data source resolving exactly one smart class parameter by name."""

    def _lookup(self, ctx: EngineContext, name: str, attrs: Mapping[str, Any]) -> dict[str, Any]:
        query = ForemanSmartClassParameter(
            parent=parent_from_ids(**{key: attrs.get(key) for key in _PARENT_KEYS.values()}),
            parameter=attrs.get("parameter"),
        )
        found = _api(ctx).query(query).one("smart_class_parameter")
        return _attrs(name, found)

    def create(
        self, ctx: EngineContext, desired: SmartClassParameterDataSource
    ) -> dict[str, Any]:
        return self._lookup(ctx, desired.name, desired.attributes())

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        return self._lookup(ctx, prior.name, prior.attributes)

    def update(
        self,
        ctx: EngineContext,
        desired: SmartClassParameterDataSource,
        prior: ResourceInstance,
    ) -> dict[str, Any]:
        _ = prior
        return self.create(ctx, desired)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        _ = ctx, prior
