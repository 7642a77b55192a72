"""Tests for smart class parameter handlers and attribute bag conversion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from foreman_provisioner.api.errors import DomainError, RequestConstructionError
from foreman_provisioner.api.smart_class_parameter import HostGroupParent
from foreman_provisioner.core.state import ResourceInstance
from foreman_provisioner.engine.errors import ResourceImportError
from foreman_provisioner.engine.handlers import EngineContext
from foreman_provisioner.engine.smart_class_parameter_handler import (
    SmartClassParameterDataHandler,
    SmartClassParameterHandler,
    build_smart_class_parameter,
    set_attributes_from_smart_class_parameter,
)
from foreman_provisioner.resources import (
    OverrideValueEntry,
    SmartClassParameterDataSource,
    SmartClassParameterResource,
)

if TYPE_CHECKING:
    from foreman_provisioner.core import ForemanProvider
    from tests.unit.conftest import FakeForeman


@pytest.fixture
def ctx(provider: ForemanProvider, foreman: FakeForeman) -> EngineContext:
    foreman.add_parameter("hostgroups", 3, 7, "ntp_servers", default_value=["a.pool", "b.pool"])
    return EngineContext(provider=provider)


def _instance(address: str, attrs: dict[str, Any]) -> ResourceInstance:
    resource_type, name = address.rsplit(".", 1)
    return ResourceInstance(
        address=address, resource_type=resource_type, name=name, attributes=attrs
    )


class TestAttributeBag:
    def test_build_then_set_is_idempotent(self) -> None:
        bag = {
            "id": "7",
            "parameter_id": 7,
            "hostgroup_id": 3,
            "parameter": "ntp_servers",
            "override": True,
            "description": "NTP servers",
            "default_value": '["a.pool"]',
            "hidden_value": False,
            "omit": False,
            "path": "fqdn\nhostgroup\nos",
            "validator_type": "list",
            "validator_rule": "a.pool, b.pool",
            "override_values": [
                {"match": "os=Debian", "value": "x", "omit": False},
                {"match": "fqdn=a.test", "value": "", "omit": True},
            ],
            "override_value_order": "fqdn\nos",
            "parameter_type": "array",
            "required": True,
            "merge_overrides": False,
            "merge_default": False,
            "avoid_duplicates": False,
        }
        out: dict[str, Any] = {}
        set_attributes_from_smart_class_parameter(out, build_smart_class_parameter(bag))
        assert out == bag

    def test_parameter_id_alone_sets_identity(self) -> None:
        p = build_smart_class_parameter({"parameter_id": 7, "hostgroup_id": 3})
        assert p.id == 7
        assert p.parent == HostGroupParent(id=3)
        assert p.override_values is None

    def test_missing_parent_raises(self) -> None:
        with pytest.raises(RequestConstructionError, match="exactly one"):
            build_smart_class_parameter({"parameter_id": 7})

    def test_several_parents_raise(self) -> None:
        with pytest.raises(RequestConstructionError, match="exactly one"):
            build_smart_class_parameter({"parameter_id": 7, "host_id": 1, "hostgroup_id": 3})


class TestSmartClassParameterHandler:
    def test_create_adopts_and_updates(self, ctx: EngineContext, foreman: FakeForeman) -> None:
        foreman.add_override_value(7, "os=RedHat", "stale")
        desired = SmartClassParameterResource(
            name="ntp_servers",
            parameter_id=7,
            hostgroup_id=3,
            override=True,
            override_values=[OverrideValueEntry(match="os=Debian", value="deb.pool")],
        )

        attrs = SmartClassParameterHandler().create(ctx, desired)

        assert attrs["id"] == "7"
        assert attrs["parameter"] == "ntp_servers"
        assert attrs["override"] is True
        assert attrs["default_value"] == '["a.pool","b.pool"]'
        assert attrs["override_values"] == [
            {"match": "os=Debian", "value": "deb.pool", "omit": False}
        ]
        assert [ov["match"] for ov in foreman.override_values[7].values()] == ["os=Debian"]

    def test_create_missing_parameter_explains(self, ctx: EngineContext) -> None:
        desired = SmartClassParameterResource(name="nope", parameter_id=99, hostgroup_id=3)
        with pytest.raises(DomainError, match="Puppet class import"):
            SmartClassParameterHandler().create(ctx, desired)

    def test_read_roundtrip_and_gone(self, ctx: EngineContext) -> None:
        handler = SmartClassParameterHandler()
        attrs = handler.create(
            ctx, SmartClassParameterResource(name="ntp", parameter_id=7, hostgroup_id=3)
        )
        assert handler.read(ctx, _instance("foreman_smart_class_parameter.ntp", attrs)) == attrs

        gone = {**attrs, "id": "99", "parameter_id": 99}
        assert handler.read(ctx, _instance("foreman_smart_class_parameter.ntp", gone)) is None

    def test_delete_only_releases(self, ctx: EngineContext, foreman: FakeForeman) -> None:
        prior = _instance(
            "foreman_smart_class_parameter.ntp", {"id": "7", "parameter_id": 7, "hostgroup_id": 3}
        )
        SmartClassParameterHandler().delete(ctx, prior)
        assert foreman.requests == []
        assert ("hostgroups", 3, 7) in foreman.parameters

    def test_import_state(self, ctx: EngineContext) -> None:
        attrs = SmartClassParameterHandler().import_state(ctx, "ntp", "hostgroups/3/7")
        assert attrs["parameter_id"] == 7
        assert attrs["hostgroup_id"] == 3
        assert attrs["override_values"] == []

    @pytest.mark.parametrize("import_id", ["hostgroups/3", "hostgroups/x/7", "domains/3/7"])
    def test_import_rejects_malformed_ids(self, ctx: EngineContext, import_id: str) -> None:
        with pytest.raises((ResourceImportError, RequestConstructionError)):
            SmartClassParameterHandler().import_state(ctx, "ntp", import_id)


class TestSmartClassParameterDataSource:
    def test_resolves_by_name(self, ctx: EngineContext, foreman: FakeForeman) -> None:
        foreman.add_parameter("hostgroups", 3, 8, "motd")
        desired = SmartClassParameterDataSource(name="motd", hostgroup_id=3, parameter="motd")

        attrs = SmartClassParameterDataHandler().create(ctx, desired)

        assert attrs["parameter_id"] == 8
        assert attrs["hostgroup_id"] == 3

    def test_unknown_name_raises(self, ctx: EngineContext) -> None:
        desired = SmartClassParameterDataSource(name="x", hostgroup_id=3, parameter="missing")
        with pytest.raises(DomainError, match="no results"):
            SmartClassParameterDataHandler().create(ctx, desired)
