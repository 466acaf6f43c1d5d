"""Pytest fixtures for Backstop tests."""

import logging
from typing import Generator

import pytest
import structlog

from backstop.cli.helpers import reset_logging_state as reset_cli_logging_state
from backstop.core.config import NotificationConfig
from backstop.dispatch import ErrorHub, reset_error_hub
from backstop.notifications import NotificationManager, reset_notification_manager

from tests.helpers import ManualScheduler


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    reset_cli_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level

    yield

    reset_cli_logging_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if handler not in original_handlers:
            handler.close()
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Forget the process-wide hub and notification manager."""
    reset_error_hub()
    reset_notification_manager()
    yield
    reset_error_hub()
    reset_notification_manager()


@pytest.fixture
def scheduler() -> ManualScheduler:
    """A scheduler whose clock only moves when the test advances it."""
    return ManualScheduler()


@pytest.fixture
def notifications(scheduler: ManualScheduler) -> NotificationManager:
    """Notification manager driven by the manual scheduler."""
    return NotificationManager(NotificationConfig(), scheduler=scheduler)


@pytest.fixture
def hub() -> ErrorHub:
    return ErrorHub()
