"""Centralized configuration for the RBAC operations engine.

Values come from ``RBACOPS_*`` environment variables (and an optional
``.env``), can be overridden from a YAML file with :meth:`Settings.from_yaml`,
and finally from CLI flags.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from rbacops.shared.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables."""

    environment: str = "development"

    # Logging
    log_level: str = "info"
    json_logs: bool = False
    log_file: str | None = None

    # Policy sources, resolved against data_dir
    data_dir: Path = Path(".")
    hierarchy_file: str = "roleHierarchy.txt"
    objects_file: str = "resourceObjects.txt"
    permissions_file: str = "permissionsToRoles.txt"
    constraints_file: str = "roleSetsSSD.txt"
    users_file: str = "userRoles.txt"

    # Display
    matrix_columns: int = Field(default=5, ge=1)
    term_width: int = Field(default=80, ge=20)

    # Retry; None means ask the operator to fix the file and press enter
    max_load_attempts: int | None = Field(default=None, ge=1)
    retry_delay_seconds: float = Field(default=0.0, ge=0.0)

    model_config = {"env_prefix": "RBACOPS_", "env_file": ".env", "extra": "ignore"}

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level

    def path_for(self, filename: str) -> Path:
        """Resolve a policy file name against :attr:`data_dir`."""
        path = Path(filename)
        return path if path.is_absolute() else self.data_dir / path

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> Settings:
        """Build settings from a YAML mapping; keyword *overrides* win.

        Relative ``data_dir`` values are resolved against the YAML file's
        directory.
        """
        config_path = Path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Configuration file {config_path} does not exist",
                error_code="RBAC_CONFIG_NOT_FOUND",
                context={"path": str(config_path)},
            ) from exc
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping",
                error_code="RBAC_CONFIG_INVALID",
                context={"path": str(config_path)},
            )
        if "data_dir" in data and not Path(str(data["data_dir"])).is_absolute():
            data["data_dir"] = config_path.parent / str(data["data_dir"])
        data.update(overrides)
        logger.info("config_loaded_from_file", path=str(config_path), keys=sorted(data))
        return cls(**data)

