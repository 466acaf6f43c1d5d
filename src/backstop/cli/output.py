"""Rich output formatting for the Backstop CLI.

Centralizes the console instance, colors and table builders so every
command renders classifications, schedules and configs the same way.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from backstop.core.constants import RETRY_JITTER_RATIO
from backstop.core.errors import ErrorDetails, Severity

# =============================================================================
# Shared console instance
# =============================================================================

console = Console()


# =============================================================================
# Color schemes
# =============================================================================


class SeverityColors:
    """Color mappings for severity levels."""

    SEVERITY: dict[Severity, str] = {
        Severity.LOW: "yellow",
        Severity.MEDIUM: "red",
        Severity.HIGH: "bold red",
        Severity.CRITICAL: "bold white on red",
    }

    @classmethod
    def get(cls, severity: Severity) -> str:
        return cls.SEVERITY.get(severity, "white")


def format_severity(severity: Severity) -> str:
    color = SeverityColors.get(severity)
    return f"[{color}]{severity.name.lower()}[/{color}]"


def format_bool(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


# =============================================================================
# Table builders
# =============================================================================


def create_simple_table(show_header: bool = False) -> Table:
    """Create a simple table without box styling, for key-value displays."""
    return Table(show_header=show_header, box=None)


def create_classification_panel(details: ErrorDetails) -> Panel:
    """Render an ErrorDetails as a titled key-value panel."""
    table = create_simple_table()
    table.add_column("Field", style="cyan")
    table.add_column("Value", no_wrap=False)

    table.add_row("Kind", details.kind.value)
    table.add_row("Severity", format_severity(details.severity))
    table.add_row("Retryable", format_bool(details.is_retryable))
    table.add_row("User message", escape(details.user_message))
    table.add_row("Raw message", f"[dim]{escape(details.raw_message)}[/dim]")
    if details.code:
        table.add_row("Code", escape(details.code))
    if details.correlation_id:
        table.add_row("Correlation id", escape(details.correlation_id))
    if details.recovery_actions:
        labels = ", ".join(f"{a.label} ({a.kind.value})" for a in details.recovery_actions)
        table.add_row("Actions", escape(labels))
    for error in details.field_errors:
        table.add_row("Field error", escape(f"{error.field}: {error.message}"))

    return Panel(
        table,
        title=details.kind.title,
        border_style=SeverityColors.get(details.severity),
    )


def create_schedule_table(delays: list[float], jitter: bool) -> Table:
    """Table of retry delays between consecutive attempts."""
    table = Table(title="Backoff schedule", show_header=True, header_style="bold")
    table.add_column("Retry", justify="right", style="cyan")
    table.add_column("Before attempt", justify="right")
    table.add_column("Delay (s)", justify="right")
    if jitter:
        table.add_column("Jitter range (s)", justify="right", style="dim")

    for index, delay in enumerate(delays, start=1):
        row = [str(index), str(index + 1), f"{delay:.3f}"]
        if jitter:
            low, high = delay * (1 - RETRY_JITTER_RATIO), delay * (1 + RETRY_JITTER_RATIO)
            row.append(f"{low:.3f} - {high:.3f}")
        table.add_row(*row)
    return table


def create_config_table(data: dict[str, Any]) -> Table:
    """Flatten a nested config dump into a section/key/value table."""
    table = Table(title="Backstop configuration", show_header=True, header_style="bold")
    table.add_column("Section", style="cyan")
    table.add_column("Key")
    table.add_column("Value")
    for section, values in data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(section, key, escape(str(value)))
        else:
            table.add_row(section, "", escape(str(values)))
    return table
