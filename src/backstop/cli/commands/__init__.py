"""CLI command modules."""

from .backoff import backoff
from .classify import classify
from .config_cmd import config
from .probe import probe

__all__ = [
    "backoff",
    "classify",
    "config",
    "probe",
]
