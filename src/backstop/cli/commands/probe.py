"""Probe command for the Backstop CLI.

Runs a single reachability check against a URL, the same check the
network monitor performs while offline.

Exit codes:
  0: Reachable (2xx response)
  1: Unreachable or timed out
"""

from __future__ import annotations

import asyncio

import typer
from rich.markup import escape

from backstop.core.constants import PROBE_DEFAULT_TIMEOUT_SECONDS
from backstop.network import HttpProbe, NetworkMonitor

from ..helpers import configure_global_logging
from ..output import console


async def _check(url: str, timeout: float) -> bool:
    async with HttpProbe(url, timeout=timeout) as http_probe:
        monitor = NetworkMonitor(http_probe, timeout=timeout)
        return await monitor.check_connectivity()


def probe(
    url: str = typer.Argument(..., help="Endpoint to GET"),
    timeout: float = typer.Option(
        PROBE_DEFAULT_TIMEOUT_SECONDS,
        "--timeout",
        "-t",
        min=0.1,
        help="Hard timeout in seconds",
    ),
) -> None:
    """Check whether an endpoint is reachable."""
    configure_global_logging(console)

    if asyncio.run(_check(url, timeout)):
        console.print(f"[green]reachable[/green] {escape(url)}")
        return
    console.print(f"[red]unreachable[/red] {escape(url)}")
    raise typer.Exit(1)
