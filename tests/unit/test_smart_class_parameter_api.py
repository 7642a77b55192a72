"""Tests for smart class parameter read/update/search."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from foreman_provisioner.api.errors import NotFoundError, RequestConstructionError
from foreman_provisioner.api.smart_class_parameter import (
    EnvironmentParent,
    ForemanSmartClassParameter,
    HostGroupParent,
    HostParent,
    SmartClassOverrideValue,
    parent_from_ids,
    parent_from_kind,
)

if TYPE_CHECKING:
    from foreman_provisioner.api.smart_class_parameter import SmartClassParameterAPI
    from foreman_provisioner.core import ForemanProvider
    from tests.unit.conftest import FakeForeman


@pytest.fixture
def api(provider: ForemanProvider) -> SmartClassParameterAPI:
    return provider.smart_class_parameters


class TestParents:
    @pytest.mark.parametrize(
        ("kwargs", "expected"),
        [
            ({"host_id": 1}, HostParent(id=1)),
            ({"hostgroup_id": 2}, HostGroupParent(id=2)),
            ({"environment_id": 3}, EnvironmentParent(id=3)),
        ],
    )
    def test_exactly_one_parent(self, kwargs: dict[str, int], expected: object) -> None:
        assert parent_from_ids(**kwargs) == expected

    def test_no_parent_raises(self) -> None:
        with pytest.raises(RequestConstructionError, match="exactly one"):
            parent_from_ids()

    def test_several_parents_raise(self) -> None:
        with pytest.raises(RequestConstructionError, match="got 2"):
            parent_from_ids(host_id=1, environment_id=3)

    def test_parent_from_kind(self) -> None:
        assert parent_from_kind("environments", 4) == EnvironmentParent(id=4)
        with pytest.raises(RequestConstructionError, match="Unknown parent kind"):
            parent_from_kind("domains", 4)


@pytest.mark.parametrize(
    ("parent", "path"),
    [
        (HostParent(id=1), "hosts/1/parameters/7"),
        (HostGroupParent(id=2), "hostgroups/2/parameters/7"),
        (EnvironmentParent(id=3), "environments/3/parameters/7"),
    ],
)
def test_read_resolves_endpoint_from_parent(
    api: SmartClassParameterAPI, foreman: FakeForeman, parent: HostParent, path: str
) -> None:
    foreman.add_parameter(parent.kind, parent.id, 7, "ntp_servers")

    found = api.read(parent, 7)

    assert foreman.calls() == [("GET", path)]
    assert found.id == 7
    assert found.parameter == "ntp_servers"
    assert found.parent == parent


def test_read_missing_raises_not_found(api: SmartClassParameterAPI, foreman: FakeForeman) -> None:
    _ = foreman
    with pytest.raises(NotFoundError):
        api.read(HostParent(id=1), 99)


def test_update_without_parent_raises(api: SmartClassParameterAPI) -> None:
    with pytest.raises(RequestConstructionError, match="no parent"):
        api.update(ForemanSmartClassParameter(id=7, description="x"))


def test_update_without_override_values_leaves_them_alone(
    api: SmartClassParameterAPI, foreman: FakeForeman
) -> None:
    foreman.add_parameter("hostgroups", 2, 7, "ntp_servers")
    ov_id = foreman.add_override_value(7, "os=Debian", "a")

    updated = api.update(
        ForemanSmartClassParameter(
            id=7, parent=HostGroupParent(id=2), override=True, default_value="pool.ntp.org"
        )
    )

    put = foreman.requests[0]
    assert put.method == "PUT"
    assert json.loads(put.body) == {"override": True, "default_value": "pool.ntp.org"}
    assert foreman.calls("DELETE") == []
    assert updated.override is True
    assert updated.default_value == "pool.ntp.org"
    assert [ov.id for ov in updated.override_values or []] == [ov_id]


def test_update_replaces_override_values_in_order(
    api: SmartClassParameterAPI, foreman: FakeForeman
) -> None:
    foreman.add_parameter("hosts", 1, 7, "ntp_servers")
    old_a = foreman.add_override_value(7, "os=Debian", "a")
    old_b = foreman.add_override_value(7, "os=RedHat", "b")

    updated = api.update(
        ForemanSmartClassParameter(
            id=7,
            parent=HostParent(id=1),
            override_values=[
                SmartClassOverrideValue(match="os=RedHat", value="c"),
                SmartClassOverrideValue(match="fqdn=x.test", omit=True),
            ],
        )
    )

    assert foreman.calls("DELETE") == [
        ("DELETE", f"smart_class_parameters/7/override_values/{old_a}"),
        ("DELETE", f"smart_class_parameters/7/override_values/{old_b}"),
    ]
    created = [json.loads(r.body)["override_value"] for r in foreman.requests if r.method == "POST"]
    assert created == [
        {"match": "os=RedHat", "value": "c", "omit": False},
        {"match": "fqdn=x.test", "omit": True},
    ]
    assert [(ov.match, ov.value, ov.omit) for ov in updated.override_values or []] == [
        ("os=RedHat", "c", False),
        ("fqdn=x.test", None, True),
    ]


def test_update_with_empty_list_clears_override_values(
    api: SmartClassParameterAPI, foreman: FakeForeman
) -> None:
    foreman.add_parameter("hosts", 1, 7, "ntp_servers")
    foreman.add_override_value(7, "os=Debian", "a")

    updated = api.update(
        ForemanSmartClassParameter(id=7, parent=HostParent(id=1), override_values=[])
    )

    assert updated.override_values == []
    assert foreman.override_values[7] == {}


def test_query_by_parameter_name(api: SmartClassParameterAPI, foreman: FakeForeman) -> None:
    foreman.add_parameter("environments", 3, 7, "ntp_servers")
    foreman.add_parameter("environments", 3, 8, "motd")
    foreman.add_parameter("environments", 4, 9, "motd")

    resp = api.query(ForemanSmartClassParameter(parent=EnvironmentParent(id=3), parameter="motd"))

    assert [r.id for r in resp.results] == [8]
    assert resp.results[0].parent == EnvironmentParent(id=3)
    assert foreman.calls() == [("GET", "environments/3/parameters")]


def test_query_requires_name(api: SmartClassParameterAPI) -> None:
    with pytest.raises(RequestConstructionError, match="requires a name"):
        api.query(ForemanSmartClassParameter(parent=HostParent(id=1)))
