"""
AI Clipboard Backend — Application Configuration
==================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py when building services and by the adapters for
       network bounds.

Per-user analysis settings (provider, API keys, prompt) are NOT here: they
belong to the user and live in AppSettings, persisted with the clipboard
state. This module holds deployment-level knobs only.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development. Attributes are
    grouped by concern.
    """

    # ── Storage ───────────────────────────────────────────────────────────
    # Directory holding the JSON state files (clipboard-<user>.json, subscription.json)
    storage_root: str = Field(default="./storage")

    # Owner of the clipboard state; the state file key is derived from it
    user_id: str = Field(default="anonymous", min_length=1, max_length=128)

    # ── Providers ─────────────────────────────────────────────────────────
    # Upper bound for one analysis round-trip; expiry is a RemoteRejected failure
    request_timeout: float = Field(default=30.0, ge=1.0, le=300.0)

    # Override for OpenAI-compatible gateways; empty means the SDK default
    openai_base_url: str = Field(default="")

    # ── Mock Provider ─────────────────────────────────────────────────────
    mock_delay_seconds: float = Field(default=1.5, ge=0.0, le=30.0)
    mock_failure_rate: float = Field(default=0.10, ge=0.0, le=1.0)

    # ── Billing Simulation ────────────────────────────────────────────────
    billing_delay_seconds: float = Field(default=1.5, ge=0.0, le=30.0)
    restore_success_rate: float = Field(default=0.5, ge=0.0, le=1.0)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs (parsed by the property below)
    cors_origins: str = Field(default="http://localhost:8081")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported throughout the application
settings = Settings()
