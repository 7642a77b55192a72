"""``foreman-provisioner`` command line entry point."""

from __future__ import annotations

import logging
import os
import sys

import typer

from foreman_provisioner import __version__

app = typer.Typer(
    name="foreman-provisioner",
    help="Plan and apply Foreman smart class parameters and override values.",
    no_args_is_help=True,
    add_completion=False,
)

LOG_ENV = "FOREMAN_LOG"
_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_VERBOSITY = {1: logging.INFO, 2: logging.DEBUG}


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"foreman-provisioner {__version__}")
        raise typer.Exit


def _resolve_level(verbose: int) -> int | None:
    """Level for the package logger; ``FOREMAN_LOG`` wins over ``-v``."""
    requested = os.environ.get(LOG_ENV, "").strip().upper()
    if requested:
        level = logging.getLevelName(requested)
        if isinstance(level, int):
            return level
        print(
            f"WARNING: invalid {LOG_ENV} level '{requested}'; defaulting to INFO",
            file=sys.stderr,
        )
        return logging.INFO
    if verbose <= 0:
        return None
    return _VERBOSITY.get(verbose, logging.DEBUG)


def _configure_logging(verbose: int) -> None:
    """Log to stderr, scoped to the ``foreman_provisioner`` logger.

    ``-vvv`` also turns on urllib3 connection logging.
    """
    level = _resolve_level(verbose)
    if level is None:
        return
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("foreman_provisioner").setLevel(level)
    if verbose >= 3:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (-v info, -vv debug, -vvv HTTP traffic).",
    ),
) -> None:
    _ = version
    _configure_logging(verbose)


# Commands import this module's ``app``; load them last.
from foreman_provisioner.cli import commands as _commands  # noqa: E402, F401
