from __future__ import annotations

import pytest

from foreman_provisioner.api.errors import (
    DecodeError,
    DomainError,
    NotFoundError,
    RequestConstructionError,
    TransportError,
)
from foreman_provisioner.cli.errors import handle_error
from foreman_provisioner.config.loader import ConfigError
from foreman_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    StalePlanError,
)
from foreman_provisioner.engine.types import Action, ResourceChange


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ConfigError("bad"), "Configuration error: bad"),
        (
            StalePlanError("serial", planned=3, current=4),
            "Plan is stale: State serial changed since the plan was made (3 -> 4); re-run plan",
        ),
        (ApplyCanceled(), "Apply canceled."),
        (DuplicateAddressError("foreman_override_value.a"), "Error: Duplicate resource address"),
        (NotFoundError("smart_class_parameters/7"), "Foreman object not found: Not found"),
        (TransportError("refused"), "Cannot reach Foreman: refused"),
        (
            TransportError("HTTP 401", status_code=401),
            "Foreman request failed (HTTP 401) (check username and password): HTTP 401",
        ),
        (DecodeError("not JSON"), "Unexpected response from Foreman: not JSON"),
        (RequestConstructionError("no parent"), "Invalid request: no parent"),
        (DomainError("2 results"), "Foreman error: 2 results"),
        (RuntimeError("boom"), "Error: boom"),
    ],
)
def test_message_per_error(
    exc: Exception, expected: str, capsys: pytest.CaptureFixture[str]
) -> None:
    assert handle_error(exc, color=False) == 1
    assert expected in capsys.readouterr().err


def test_apply_error_reports_partial_result(capsys: pytest.CaptureFixture[str]) -> None:
    applied = [
        ResourceChange(address="a.x", resource_type="a", action=Action.CREATE),
        ResourceChange(address="a.y", resource_type="a", action=Action.DELETE),
        ResourceChange(address="data.a.z", resource_type="data.a", action=Action.READ),
    ]
    exc = ApplyError(applied=applied, address="a.w", message="HTTP 422")

    handle_error(exc, color=False)

    err = capsys.readouterr().err.splitlines()
    assert err == [
        "Apply failed: Apply failed on a.w: HTTP 422",
        "  Partial result: 1 added, 1 destroyed.",
    ]


def test_no_color_has_no_ansi(capsys: pytest.CaptureFixture[str]) -> None:
    handle_error(ConfigError("bad"), color=False)
    assert "\x1b[" not in capsys.readouterr().err
