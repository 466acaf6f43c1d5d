"""Backoff command for the Backstop CLI.

Prints the delay schedule the retry engine would use. Options override the
``retry`` section of an optional config file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.markup import escape

from backstop.core.config import RetryConfig
from backstop.execution import RetryOptions, backoff_schedule

from ..helpers import configure_global_logging, load_config
from ..output import console, create_schedule_table


def backoff(
    max_attempts: int | None = typer.Option(
        None, "--max-attempts", "-n", help="Total attempts, the first call included"
    ),
    base_delay: float | None = typer.Option(
        None, "--base-delay", help="Delay before the second attempt (seconds)"
    ),
    max_delay: float | None = typer.Option(
        None, "--max-delay", help="Upper bound for any single delay (seconds)"
    ),
    factor: float | None = typer.Option(
        None, "--factor", help="Exponential backoff multiplier"
    ),
    jitter: bool | None = typer.Option(
        None, "--jitter/--no-jitter", help="Show the +/-10% jitter range"
    ),
    config_file: Path | None = typer.Option(
        None, "--config", help="Read defaults from this YAML config"
    ),
) -> None:
    """Print the retry delay schedule."""
    configure_global_logging(console)

    base = load_config(config_file, console).retry if config_file else RetryConfig()
    overrides: dict[str, Any] = {
        "max_attempts": max_attempts,
        "base_delay": base_delay,
        "max_delay": max_delay,
        "backoff_factor": factor,
        "jitter": jitter,
    }
    merged = {**base.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
    try:
        retry = RetryConfig.model_validate(merged)
    except ValidationError as e:
        console.print(f"[red]Invalid retry options:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None

    delays = backoff_schedule(RetryOptions.from_config(retry))
    if not delays:
        console.print("[dim]max_attempts is 1: no retries are made[/dim]")
        return
    console.print(create_schedule_table(delays, jitter=retry.jitter))
