# src/drawflow/core/config.py
"""Configuration schema and loading for drawflow.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from drawflow.contracts.enums import WorkflowNodeType

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _default_resources() -> dict[WorkflowNodeType, str]:
    return {node_type: f"local:{node_type.value}" for node_type in WorkflowNodeType}


class DatabaseSettings(BaseModel):
    """Entity store connection configuration."""

    model_config = {"frozen": True}

    url: str = Field(default="sqlite:///./drawflow.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements")


class BlobStoreSettings(BaseModel):
    """Filesystem blob store configuration."""

    model_config = {"frozen": True}

    base_path: Path = Field(default=Path("./blobs"), description="Root directory for stored blobs")
    bucket: str = Field(default="drawflow", min_length=1, description="Bucket name used in blob URIs")


class BuildSettings(BaseModel):
    """Build orchestrator timing.

    Example YAML:
        build:
          poll_interval_seconds: 1.0
          ready_timeout_seconds: 300
    """

    model_config = {"frozen": True}

    poll_interval_seconds: float = Field(default=1.0, gt=0, description="Delay between readiness polls")
    ready_timeout_seconds: float = Field(default=300.0, gt=0, description="Upper bound on waiting for readiness")

    @property
    def max_poll_attempts(self) -> int:
        """Number of readiness checks that fit inside the timeout, including the first."""
        return int(self.ready_timeout_seconds // self.poll_interval_seconds) + 1


class DrawSettings(BaseModel):
    model_config = {"frozen": True}

    bucket_workers: int = Field(default=1, ge=1, description="Threads used to process buckets of one round")


class LoggingSettings(BaseModel):
    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False


class DrawflowSettings(BaseModel):
    """Top-level drawflow settings.

    resources maps every functional node type to the execution-engine
    resource reference that runs it.
    """

    model_config = {"frozen": True}

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    blob_store: BlobStoreSettings = Field(default_factory=BlobStoreSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    draw: DrawSettings = Field(default_factory=DrawSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    resources: dict[WorkflowNodeType, str] = Field(default_factory=_default_resources)

    @field_validator("resources")
    @classmethod
    def _non_empty_refs(cls, v: dict[WorkflowNodeType, str]) -> dict[WorkflowNodeType, str]:
        empty = sorted(k.value for k, ref in v.items() if not ref.strip())
        if empty:
            raise ValueError(f"resource references must be non-empty: {', '.join(empty)}")
        return v


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values."""

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            # Unset and no default: keep the original text so validation reports it
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf uppercases top-level keys and env-provided nested keys."""
    if isinstance(value, dict):
        return {(k.lower() if isinstance(k, str) else k): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path | None = None) -> DrawflowSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (DRAWFLOW_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: DRAWFLOW_DATABASE__URL for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="DRAWFLOW",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lower_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    # Resource keys are node type names and must keep their case
    if "resources" in raw_config:
        raw_config["resources"] = _restore_resource_keys(raw_config["resources"])

    return DrawflowSettings(**raw_config)


def _restore_resource_keys(resources: dict[str, Any]) -> dict[str, Any]:
    by_lower = {node_type.value.lower(): node_type.value for node_type in WorkflowNodeType}
    return {by_lower.get(k.lower(), k): v for k, v in resources.items()}
