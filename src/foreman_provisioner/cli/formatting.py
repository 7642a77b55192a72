"""Terraform-style rendering of plans, drift and apply results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from foreman_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from foreman_provisioner.core.state import ResourceInstance, State
    from foreman_provisioner.engine.types import Plan, ResourceChange


class _ActionStyle(NamedTuple):
    color: str
    symbol: str
    description: str
    progress_verb: str
    done_verb: str


_ACTION_STYLES: dict[str, _ActionStyle] = {
    "create": _ActionStyle("green", "+", "will be created", "Creating", "Creation complete"),
    "update": _ActionStyle(
        "yellow", "~", "will be updated in-place", "Updating", "Update complete"
    ),
    "delete": _ActionStyle("red", "-", "will be destroyed", "Destroying", "Destroy complete"),
    "read": _ActionStyle("cyan", "<=", "will be read during apply", "Reading", "Read complete"),
    "no-op": _ActionStyle("bright_black", " ", "is up-to-date", "", ""),
}

# Foreman masks the default of a parameter with hidden_value set; so do we.
_SENSITIVE = "(sensitive value)"
_HIDDEN_FIELDS = frozenset({"default_value"})
# Identity and bookkeeping keys never shown inside a block
_SKIP_KEYS = frozenset({"name"})


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def has_actionable_changes(plan: Plan) -> bool:
    """True if applying ``plan`` would do anything (data reads included)."""
    return any(c.action != Action.NOOP for c in plan.changes)


def _format_value(value: Any) -> str:
    """Format one attribute value, HCL-ish."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k} = {_format_value(v)}" for k, v in value.items()) + "}"
    return str(value)


def _is_hidden(change: ResourceChange) -> bool:
    bags = (change.planned, change.prior, change.desired)
    return any(bag and bag.get("hidden_value") for bag in bags)


def _attribute_lines(change: ResourceChange) -> list[tuple[str, str]]:
    """``(key, rendered value)`` pairs shown inside the change block."""
    hidden = _is_hidden(change)

    def show(key: str, value: Any) -> str:
        return _SENSITIVE if hidden and key in _HIDDEN_FIELDS else _format_value(value)

    if change.action == Action.UPDATE:
        return [
            (k, f"{show(k, d['from'])} -> {show(k, d['to'])}")
            for k, d in (change.diff or {}).items()
        ]
    bag = change.prior if change.action == Action.DELETE else change.planned
    return [(k, show(k, v)) for k, v in (bag or {}).items() if k not in _SKIP_KEYS]


def _render_attributes(
    pairs: Iterable[tuple[str, str]], symbol: str = "", indent: str = "      "
) -> list[str]:
    """Lines with the ``=`` signs aligned."""
    pairs = list(pairs)
    width = max((len(k) for k, _ in pairs), default=0)
    lead = f"{indent}{symbol} " if symbol else indent
    return [f"{lead}{k.ljust(width)} = {v}" for k, v in pairs]


def _block_header(change: ResourceChange) -> tuple[str, str, str]:
    """``(block kind, type label, name)`` for a change."""
    name = change.address.rsplit(".", 1)[-1]
    if change.is_data_source:
        return "data", change.resource_type.removeprefix("data."), name
    return "resource", change.resource_type, name


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """Render a single change as a Terraform-style block."""
    style = styler(color)
    s = _ACTION_STYLES[change.action.value]
    kind, type_label, name = _block_header(change)

    lines = [style(f"  # {change.address} {s.description}", fg=s.color, bold=True)]
    lines.append(style(f'  {s.symbol} {kind} "{type_label}" "{name}" {{', fg=s.color))
    lines.extend(
        style(line, fg=s.color) for line in _render_attributes(_attribute_lines(change), s.symbol)
    )
    lines.append(style("    }", fg=s.color))
    return "\n".join(lines)


def format_changes(changes: list[ResourceChange], *, color: bool = True) -> str:
    """Render every non-NOOP change, blocks separated by a blank line."""
    blocks = [format_change(c, color=color) for c in changes if c.action != Action.NOOP]
    return "\n\n".join(blocks) if blocks else "No changes. Resources are up-to-date."


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def changes_summary(changes: list[ResourceChange]) -> dict[str, int]:
    """Count the changes that write to Foreman, by action."""
    summary = {"create": 0, "update": 0, "delete": 0}
    for c in changes:
        if c.action.mutates:
            summary[c.action.value] += 1
    return summary


def _summary_counts(summary: dict[str, int], verbs: tuple[str, str, str], *, color: bool) -> str:
    style = styler(color)
    parts = []
    for action, verb in zip(("create", "update", "delete"), verbs, strict=True):
        n = summary.get(action, 0)
        text = f"{n} {verb}"
        parts.append(style(text, fg=_ACTION_STYLES[action].color) if n else text)
    return ", ".join(parts)


def format_plan_summary(
    summary: dict[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """Render ``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    counts = _summary_counts(summary, ("to add", "to change", "to destroy"), color=color)
    return f"{header}: {counts}."


def format_apply_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """Render ``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    header = styler(color)("Apply complete!", fg="green", bold=True)
    counts = _summary_counts(summary, ("added", "changed", "destroyed"), color=color)
    return f"{header} Resources: {counts}."


def _format_instance(inst: ResourceInstance, *, color: bool) -> str:
    style = styler(color)
    attrs = inst.attributes
    hidden = bool(attrs.get("hidden_value"))
    pairs = [
        (k, _SENSITIVE if hidden and k in _HIDDEN_FIELDS else _format_value(v))
        for k, v in sorted(attrs.items())
        if k not in _SKIP_KEYS
    ]
    kind = "data" if inst.resource_type.startswith("data.") else "resource"
    type_label = inst.resource_type.removeprefix("data.")
    lines = [
        style(f"# {inst.address}:", bold=True),
        f'{kind} "{type_label}" "{inst.name}" {{',
        *_render_attributes(pairs, indent="  "),
        "}",
    ]
    return "\n".join(lines)


def format_state(state: State, *, color: bool = True) -> str:
    """Render every tracked object, ``terraform show`` style."""
    if not state.resources:
        return "The state is empty. No resources are tracked."
    return "\n\n".join(
        _format_instance(inst, color=color) for _, inst in sorted(state.resources.items())
    )
