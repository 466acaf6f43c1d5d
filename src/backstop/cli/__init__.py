"""Backstop CLI.

Operator tooling for inspecting how failures are classified, checking
endpoint reachability, validating configuration and previewing retry
schedules.

★ Insight ─────────────────────────────────────
1. **Global options in the callback**: ``--log-level``, ``--log-format``
   and ``--log-file`` are collected by option callbacks before any command
   runs; logging is configured once from that state.

2. **One module per command**: command functions live in ``commands/`` and
   are registered here, so this file only assembles the app.
─────────────────────────────────────────────────

Package structure:
    cli/
    ├── __init__.py           # app assembly
    ├── helpers.py            # logging state, config loading
    ├── output.py             # Rich formatting
    └── commands/
        ├── classify.py       # classify command
        ├── probe.py          # probe command
        ├── config_cmd.py     # config command
        └── backoff.py        # backoff command
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from backstop import __version__

from . import helpers as helpers
from .commands import backoff, classify, config, probe
from .helpers import configure_global_logging, set_log_file, set_log_format, set_log_level
from .output import console

# =============================================================================
# Typer app definition
# =============================================================================

app = typer.Typer(
    name="backstop",
    help="Error classification, retry and connectivity tooling",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Backstop v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="BACKSTOP_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="BACKSTOP_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json or console",
            envvar="BACKSTOP_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """Backstop - error classification, retry and connectivity tooling."""
    configure_global_logging(console)


# =============================================================================
# Command registration
# =============================================================================

app.command()(classify)
app.command()(probe)
app.command()(config)
app.command()(backoff)


__all__ = [
    "app",
    "console",
    "main",
]
