"""CLI commands.

Every command loads the YAML configuration, calls the matching function of
:mod:`foreman_provisioner.config` and renders the result. Failures are turned
into a one-line stderr message and exit code 1 by :func:`_failures_exit`.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer

from foreman_provisioner.cli import app
from foreman_provisioner.cli.errors import handle_error

if TYPE_CHECKING:
    from collections.abc import Iterator

    from foreman_provisioner.config.schema import Config
    from foreman_provisioner.engine.types import ApplyResult, Plan, ResourceChange

DEFAULT_CONFIG = Path("foreman-provisioner.yaml")

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file.", envvar="FOREMAN_CONFIG"),
]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Skip interactive approval.")]
NoRefresh = Annotated[
    bool,
    typer.Option("--no-refresh", help="Plan against the state file without reading Foreman."),
]


def _use_color(no_color: bool) -> bool:
    return not (no_color or os.environ.get("NO_COLOR"))


@contextlib.contextmanager
def _failures_exit(color: bool) -> Iterator[None]:
    try:
        yield
    except typer.Exit:
        raise
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


def _confirm(question: str, canceled: str) -> None:
    try:
        typer.confirm(question, abort=True)
    except typer.Abort as e:
        typer.echo(canceled, err=True)
        raise typer.Exit(1) from e


def _apply_with_progress(plan_obj: Plan, cfg: Config, *, color: bool) -> ApplyResult:
    """Apply with a rich progress bar, printing one line per finished change."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    from foreman_provisioner.cli.formatting import _ACTION_STYLES
    from foreman_provisioner.config import apply
    from foreman_provisioner.engine.types import Action

    pending = sum(1 for c in plan_obj.changes if c.action != Action.NOOP)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=Console(no_color=not color, highlight=False),
    )

    with progress:
        task = progress.add_task("Applying", total=pending)

        def report(change: ResourceChange, event: Literal["start", "done"]) -> None:
            verbs = _ACTION_STYLES[change.action.value]
            if event == "start":
                progress.update(task, description=f"{change.address}: {verbs.progress_verb}...")
                return
            progress.console.print(f"  {change.address}: {verbs.done_verb}", markup=False)
            progress.advance(task)

        return apply(plan_obj, cfg, progress=report)


def _show_and_apply(
    plan_obj: Plan,
    cfg: Config,
    *,
    color: bool,
    auto_approve: bool,
    question: str,
    nothing_to_do: str,
) -> None:
    from foreman_provisioner.cli.formatting import (
        format_apply_summary,
        format_plan,
        format_plan_summary,
        has_actionable_changes,
    )

    if not has_actionable_changes(plan_obj):
        typer.echo(nothing_to_do)
        raise typer.Exit(0)

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))
    typer.echo()

    if not auto_approve:
        _confirm(question, "Apply canceled.")

    with _failures_exit(color):
        result = _apply_with_progress(plan_obj, cfg, color=color)

    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Write the plan to this file for a later apply."),
    ] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show what apply would change. Exits 2 when changes are pending."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import (
        format_plan,
        format_plan_summary,
        has_actionable_changes,
    )

    color = _use_color(no_color)
    with _failures_exit(color):
        plan_obj = api.plan(api.load(config), refresh=not no_refresh)

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))

    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")

    if has_actionable_changes(plan_obj):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[
        Path | None,
        typer.Argument(help="Plan written by 'plan --out'; planned afresh when omitted."),
    ] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Create, update and delete Foreman objects to match the configuration."""
    from foreman_provisioner import config as api
    from foreman_provisioner.engine.types import Plan

    color = _use_color(no_color)
    with _failures_exit(color):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)

    _show_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you want to apply these changes?",
        nothing_to_do="No changes. Resources are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete managed override values and release managed parameters.

    Smart class parameters belong to their Puppet class and are never
    deleted; they are only dropped from the state.
    """
    from foreman_provisioner import config as api

    color = _use_color(no_color)
    with _failures_exit(color):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)

    _show_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you really want to destroy all resources?",
        nothing_to_do="No resources to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Update the state file with what Foreman currently holds."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import (
        changes_summary,
        format_changes,
        format_plan_summary,
    )

    color = _use_color(no_color)
    with _failures_exit(color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if not changes:
        typer.echo("No changes. State is up-to-date with Foreman.")
        raise typer.Exit(0)

    typer.echo(format_changes(changes, color=color))
    typer.echo()
    typer.echo(format_plan_summary(changes_summary(changes), color=color, header="Refresh"))
    typer.echo()

    if not auto_approve:
        _confirm("Do you want to update the state file?", "Refresh canceled.")

    with _failures_exit(color):
        api.save_state(cfg, state)
    n = len(state.resources)
    typer.echo(f"State refreshed. {n} resource{'' if n == 1 else 's'} tracked.")


@app.command()
def drift(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Report objects changed or deleted in Foreman since the last apply."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import format_changes

    color = _use_color(no_color)
    with _failures_exit(color):
        changes = api.drift(api.load(config))

    if not changes:
        typer.echo("No drift detected. State is up-to-date with Foreman.")
        raise typer.Exit(0)

    typer.echo("Drift detected:\n")
    typer.echo(format_changes(changes, color=color))


@app.command(name="import")
def import_cmd(
    address: Annotated[
        str,
        typer.Argument(help="Resource address, e.g. foreman_override_value.ntp_dc1."),
    ],
    import_id: Annotated[
        str,
        typer.Argument(
            help="<parameter_id>/<id> for override values, "
            "<hosts|hostgroups|environments>/<parent_id>/<id> for parameters.",
        ),
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Record an existing Foreman object in the state under ADDRESS."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import styler

    color = _use_color(no_color)
    with _failures_exit(color):
        api.import_resource(api.load(config), address, import_id)

    typer.echo(styler(color)(f"{address}: Import complete", fg="green"))


@app.command()
def show(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Print the objects recorded in the state file. Does not contact Foreman."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import format_state

    color = _use_color(no_color)
    with _failures_exit(color):
        state = api.show(api.load(config))

    typer.echo(format_state(state, color=color))


@app.command()
def validate(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Check the configuration offline against the state file."""
    from foreman_provisioner import config as api
    from foreman_provisioner.cli.formatting import styler

    color = _use_color(no_color)
    with _failures_exit(color):
        api.plan(api.load(config), refresh=False)

    typer.echo(styler(color)("Configuration is valid.", fg="green"))
