"""Shared helpers for the Backstop CLI.

Holds the global logging options collected by the app callback and applies
them once per invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import typer
from rich.console import Console
from rich.markup import escape

from backstop.core.config import BackstopConfig, BackstopConfigError
from backstop.core.logging import configure_logging, get_logger

_logger = get_logger("cli")

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
VALID_LOG_FORMATS = ("json", "console")


class ErrorMessages:
    """Constants for CLI error messages."""

    CONFIG_LOAD_ERROR = "Error loading config"
    INVALID_LOG_LEVEL = "Invalid log level"
    INVALID_LOG_FORMAT = "Invalid log format"


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """CLI logging configuration state set by the global options."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    """Set the log level.

    Raises:
        typer.BadParameter: If the level is not recognized.
    """
    normalized = level.upper()
    if normalized not in VALID_LOG_LEVELS:
        raise typer.BadParameter(
            f"{ErrorMessages.INVALID_LOG_LEVEL}: {level} "
            f"(choose from {', '.join(VALID_LOG_LEVELS)})"
        )
    _log_config.level = normalized  # type: ignore[assignment]


def set_log_format(fmt: str) -> None:
    """Set the log format.

    Raises:
        typer.BadParameter: If the format is not recognized.
    """
    normalized = fmt.lower()
    if normalized not in VALID_LOG_FORMATS:
        raise typer.BadParameter(
            f"{ErrorMessages.INVALID_LOG_FORMAT}: {fmt} "
            f"(choose from {', '.join(VALID_LOG_FORMATS)})"
        )
    _log_config.format = normalized  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    _log_config.file = path


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per session.

    Raises:
        typer.Exit: If logging cannot be configured.
    """
    if _log_config.configured:
        return
    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except (OSError, ValueError) as e:
        console.print(f"[red]Logging configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def reset_logging_state() -> None:
    """Reset CLI logging state (primarily for testing)."""
    global _log_config
    _log_config = CliLoggingConfig()


# =============================================================================
# Config loading
# =============================================================================


def load_config(path: Path | None, console: Console) -> BackstopConfig:
    """Load a config file, or the environment when no path is given.

    Raises:
        typer.Exit: With code 2 when the configuration cannot be loaded.
    """
    try:
        if path is None:
            return BackstopConfig.from_env()
        return BackstopConfig.from_yaml(path)
    except BackstopConfigError as e:
        _logger.debug("config_load_failed", source=e.source, error=str(e))
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None
