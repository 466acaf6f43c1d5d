"""Root Backstop configuration and its loaders."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from backstop.core.config.sections import (
    LoggingConfig,
    NotificationConfig,
    ProbeConfig,
    RetryConfig,
)

ENV_PREFIX = "BACKSTOP_"
ENV_CONFIG_PATH = "BACKSTOP_CONFIG"


class BackstopConfigError(Exception):
    """Raised when a configuration source cannot be read or is invalid."""

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class BackstopConfig(BaseModel):
    """Complete configuration for a Backstop error handler.

    Example:
        retry:
          max_attempts: 5
          base_delay: 0.5
        notifications:
          max_visible: 3
        probe:
          url: https://api.example.com/health
    """

    retry: RetryConfig = Field(default_factory=RetryConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> BackstopConfig:
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise BackstopConfigError(f"Cannot read config file: {e}", source=str(path)) from e
        except yaml.YAMLError as e:
            raise BackstopConfigError(f"Invalid YAML: {e}", source=str(path)) from e
        return cls._validate(data, source=str(path))

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> BackstopConfig:
        """Load configuration from a YAML string."""
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise BackstopConfigError(f"Invalid YAML: {e}") from e
        return cls._validate(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BackstopConfig:
        """Load configuration from ``BACKSTOP_*`` environment variables.

        ``BACKSTOP_CONFIG`` names an optional YAML file used as the base;
        ``BACKSTOP_<SECTION>_<FIELD>`` variables (e.g.
        ``BACKSTOP_RETRY_MAX_ATTEMPTS``) override individual fields.
        """
        env = os.environ if environ is None else environ

        data: dict[str, Any] = {}
        base_path = env.get(ENV_CONFIG_PATH)
        if base_path:
            data = cls.from_yaml(Path(base_path)).model_dump(exclude_unset=True)

        for section, section_field in cls.model_fields.items():
            model = section_field.annotation
            if not isinstance(model, type) or not issubclass(model, BaseModel):
                continue
            for name in model.model_fields:
                key = f"{ENV_PREFIX}{section.upper()}_{name.upper()}"
                if key in env:
                    data.setdefault(section, {})[name] = env[key]

        return cls._validate(data, source="environment")

    @classmethod
    def _validate(cls, data: Any, source: str | None = None) -> BackstopConfig:
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise BackstopConfigError(
                f"Config root must be a mapping, got {type(data).__name__}", source=source
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise BackstopConfigError(f"Invalid configuration: {e}", source=source) from e
