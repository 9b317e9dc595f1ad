# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: ledger paths,
lookup endpoint and credentials, scheduling, server and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from idsweep.ledger import layout
from idsweep.ledger.layout import LedgerPaths
from idsweep.processing.pacing import PacingConfig


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "production"] = "development"

    # === Ledger files (relative paths resolve under data_dir) ===
    data_dir: Path = Path(".")
    input_file: Path = Path(layout.INPUT_FILE)
    done_file: Path = Path(layout.DONE_FILE)
    failed_file: Path = Path(layout.FAILED_FILE)
    remaining_file: Path = Path(layout.REMAINING_FILE)
    failure_details_file: Path = Path(layout.FAILURE_DETAILS_FILE)
    results_dir: Path = Path(layout.RESULTS_DIR)

    # === Remote lookup ===
    lookup_url: str = "http://localhost:3000/api/test"
    lookup_api_key: str = ""
    lookup_params: str = "type=profile,premium=true,webhook=false,fresh=false"
    lookup_timeout_s: float = 60.0
    lookup_success_status: int = 200

    # === Scheduling ===
    concurrency: int = 4
    pacing_min_ms: int = 2000
    pacing_max_ms: int = 4000

    # === Control server ===
    host: str = "127.0.0.1"
    port: int = 3847

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("concurrency must be >= 1")
        return v

    @field_validator("lookup_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("lookup_timeout_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.pacing_min_ms < 0:
            errors.append("PACING_MIN_MS must be >= 0")
        if self.pacing_max_ms < self.pacing_min_ms:
            errors.append("PACING_MAX_MS must be >= PACING_MIN_MS")
        if self.environment == "production" and not self.lookup_api_key:
            errors.append("LOOKUP_API_KEY is required when ENVIRONMENT is production")

        try:
            self.lookup_params_dict
        except ValueError as e:
            errors.append(str(e))

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def lookup_params_dict(self) -> dict[str, str]:
        """Parse comma-separated key=value lookup parameters."""
        params: dict[str, str] = {}
        for pair in self.lookup_params.split(","):
            pair = pair.strip()
            if not pair:
                continue
            key, sep, value = pair.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"LOOKUP_PARAMS entry is not key=value: {pair!r}")
            params[key.strip()] = value.strip()
        return params

    @property
    def pacing(self) -> PacingConfig:
        return PacingConfig(min_ms=self.pacing_min_ms, max_ms=self.pacing_max_ms)

    def ledger_paths(self) -> LedgerPaths:
        """Resolve every ledger path against data_dir."""
        base = self.data_dir.expanduser()

        def resolve(p: Path) -> Path:
            p = p.expanduser()
            return p if p.is_absolute() else base / p

        return LedgerPaths(
            input_file=resolve(self.input_file),
            done_file=resolve(self.done_file),
            failed_file=resolve(self.failed_file),
            remaining_file=resolve(self.remaining_file),
            failure_details_file=resolve(self.failure_details_file),
            results_dir=resolve(self.results_dir),
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is missing or inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
