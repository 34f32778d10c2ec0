# src/config/settings.py — v1
"""Typed configuration loaded from the environment and .loretech/.env.

Built once at startup and handed to the engine client and orchestrator.
Nothing reads the environment mid-operation.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loretech.storage import layout


class ConfigurationError(Exception):
    """Raised when configuration values are out of range."""


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Engine ===
    loretech_api_url: str = "https://loretech.archive.energy"
    loretech_api_key: str = ""
    openrouter_api_key: str = ""
    exa_api_key: str = ""

    # Attribution headers
    display_name: str = ""
    x_handle: str = ""

    # === Data directory ===
    loretech_dir: Path | None = None

    # === Timing ===
    engine_timeout_s: float = 120.0
    poll_timeout_s: float = 15.0
    poll_interval_s: float = 10.0
    poll_max_attempts: int = 30

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("loretech_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:  # noqa: N805
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_timing(self) -> Settings:
        errors: list[str] = []
        if self.engine_timeout_s <= 0:
            errors.append("ENGINE_TIMEOUT_S must be > 0")
        if self.poll_timeout_s <= 0:
            errors.append("POLL_TIMEOUT_S must be > 0")
        if self.poll_interval_s < 0:
            errors.append("POLL_INTERVAL_S must be >= 0")
        if self.poll_max_attempts < 1:
            errors.append("POLL_MAX_ATTEMPTS must be >= 1")
        if errors:
            raise ConfigurationError("; ".join(errors))

        if self.loretech_dir is None:
            self.loretech_dir = layout.find_loretech_dir()
        else:
            self.loretech_dir = Path(self.loretech_dir).expanduser()
        return self

    # --- Helpers ---

    @property
    def data_dir(self) -> Path:
        assert self.loretech_dir is not None
        return self.loretech_dir

    @property
    def env_path(self) -> Path:
        return layout.env_path(self.data_dir)

    def missing_credentials(self) -> list[str]:
        """Names of the required API keys that are not set."""
        required = {
            "LORETECH_API_KEY": self.loretech_api_key,
            "OPENROUTER_API_KEY": self.openrouter_api_key,
            "EXA_API_KEY": self.exa_api_key,
        }
        return [name for name, value in required.items() if not value]


def load_settings(cwd: Path | None = None, **overrides: object) -> Settings:
    """Resolve the data directory, then load settings from its .env file.

    Args:
        cwd: Directory to start the .loretech lookup from (default: os.getcwd()).
        **overrides: Field-level overrides (for testing).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If a timing value is out of range.
    """
    explicit = overrides.pop("loretech_dir", None) or os.environ.get("LORETECH_DIR")
    if explicit:
        data_dir = Path(str(explicit)).expanduser()
    else:
        data_dir = layout.find_loretech_dir(cwd)
    return Settings(
        _env_file=layout.env_path(data_dir),  # type: ignore[call-arg]
        loretech_dir=data_dir,
        **overrides,  # type: ignore[arg-type]
    )
