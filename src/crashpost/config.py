"""
Configuration management for crashpost.

Supports configuration via YAML files, environment variables, and programmatic access.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATHS = [
    Path("/etc/crashpost/config.yaml"),
    Path.home() / ".config" / "crashpost" / "config.yaml",
    Path("crashpost-config.yaml"),
]

DEFAULT_SERVICE_URL = "https://{database}.bugsplat.com"

REDACTED_TOKEN = "***"

# YAML turns unquoted versions like 1.2 into floats
IDENTITY_FIELDS = ("database", "application", "version")

# Nested YAML keys whose names differ from the dataclass field they set
SECTION_ALIASES = {
    ("service", "url"): "service_url",
    ("service", "timeout"): "request_timeout",
    ("auth", "token"): "api_token",
    ("logging", "level"): "log_level",
    ("logging", "file"): "log_file",
}


@dataclass
class Config:
    """
    Configuration container for crashpost.

    Priority (highest to lowest):
    1. Programmatic values passed to __init__
    2. Environment variables (prefixed with CRASHPOST_)
    3. Config file values
    4. Default values
    """

    # Crash database identity
    database: str | None = None
    application: str | None = None
    version: str | None = None

    # Service settings
    service_url: str = DEFAULT_SERVICE_URL
    request_timeout: float | None = None
    pool_connections: int = 10
    pool_maxsize: int = 10

    # Authentication
    api_token: str | None = None

    # Default crash metadata
    description: str | None = None
    email: str | None = None
    app_key: str | None = None
    notes: str | None = None
    user: str | None = None
    attachments: list[str] = field(default_factory=list)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from a dictionary."""
        # Flatten nested structure if present
        flat = {}
        for key, value in data.items():
            if isinstance(value, dict):
                for subkey, subvalue in value.items():
                    flat[SECTION_ALIASES.get((key, subkey), subkey)] = subvalue
            else:
                flat[key] = value

        # Filter to only known fields
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in flat.items() if k in known_fields}

        for key in IDENTITY_FIELDS:
            if filtered.get(key) is not None:
                filtered[key] = str(filtered[key])

        # A saved config only carries the redacted placeholder
        if filtered.get("api_token") == REDACTED_TOKEN:
            filtered["api_token"] = None

        return cls(**filtered)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """
        Load configuration with full resolution order.

        Args:
            config_path: Explicit path to config file. If None, searches
                        default locations.

        Returns:
            Fully resolved Config instance.
        """
        base_config: dict[str, Any] = {}

        # Find and load config file
        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    base_config = yaml.safe_load(f) or {}
        else:
            for path in DEFAULT_CONFIG_PATHS:
                if path.exists():
                    with open(path) as f:
                        base_config = yaml.safe_load(f) or {}
                    break

        config = cls.from_dict(base_config) if base_config else cls()
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            "CRASHPOST_DATABASE": "database",
            "CRASHPOST_APPLICATION": "application",
            "CRASHPOST_VERSION": "version",
            "CRASHPOST_SERVICE_URL": "service_url",
            "CRASHPOST_REQUEST_TIMEOUT": "request_timeout",
            "CRASHPOST_API_TOKEN": "api_token",
            "CRASHPOST_USER": "user",
            "CRASHPOST_EMAIL": "email",
            "CRASHPOST_LOG_LEVEL": "log_level",
            "CRASHPOST_LOG_FILE": "log_file",
        }

        for env_var, attr in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            if attr == "request_timeout":
                setattr(self, attr, float(value) if value else None)
            else:
                setattr(self, attr, value)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "database": self.database,
            "application": self.application,
            "version": self.version,
            "service": {
                "url": self.service_url,
                "timeout": self.request_timeout,
                "pool_connections": self.pool_connections,
                "pool_maxsize": self.pool_maxsize,
            },
            "auth": {
                "token": REDACTED_TOKEN if self.api_token else None,
            },
            "metadata": {
                "description": self.description,
                "email": self.email,
                "app_key": self.app_key,
                "notes": self.notes,
                "user": self.user,
                "attachments": self.attachments,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }

    def save(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
