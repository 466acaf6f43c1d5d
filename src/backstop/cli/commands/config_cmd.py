"""Config command for the Backstop CLI.

Validates a YAML configuration file (or ``BACKSTOP_*`` environment
variables when no file is given) and prints the effective settings.

Exit codes:
  0: Valid
  2: Cannot be read or invalid
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from ..helpers import configure_global_logging, load_config
from ..output import console, create_config_table


def config(
    config_file: Path | None = typer.Argument(
        None,
        help="Path to YAML configuration file (environment when omitted)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the effective configuration as JSON",
    ),
) -> None:
    """Validate a configuration and print the effective settings."""
    configure_global_logging(console)

    loaded = load_config(config_file, console)
    data = loaded.model_dump(mode="json")

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return
    console.print(create_config_table(data))
    console.print("[green]Configuration is valid[/green]")
