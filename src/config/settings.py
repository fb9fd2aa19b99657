"""
Configuration management with Pydantic validation.

Loads settings from YAML config file and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class ExecutionConfig(BaseModel):
    """Order submission configuration."""

    request_timeout_sec: float = Field(default=30.0, ge=1.0, le=120.0)
    recv_window: int = Field(default=5000, ge=1000, le=60000)
    client_order_prefix: str = Field(default="cointel", min_length=1, max_length=16)
    # Opt-in: exchanges without a test environment would send test-mode orders live.
    allow_live_fallback_in_test_mode: bool = False
    endpoint_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Base URL overrides keyed by '<exchange>:<spot|futures>:<live|test>'",
    )


class StrategyConfig(BaseModel):
    """Alert strategy naming convention."""

    intraday_prefixes: list[str] = Field(
        default_factory=lambda: ["INTRADAY", "BB_", "RSI", "EMA", "MACD", "SCALP"]
    )
    multientry_prefixes: list[str] = Field(
        default_factory=lambda: ["MULTIENTRY", "MULTI_ENTRY", "ME_"]
    )
    intraday_order_kind: Literal["market", "limit"] = "limit"

    @field_validator("intraday_prefixes", "multientry_prefixes")
    @classmethod
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        cleaned = [p.strip().upper() for p in v if p and p.strip()]
        if not cleaned:
            raise ValueError("at least one strategy prefix is required")
        return cleaned


class StorageConfig(BaseModel):
    """Storage paths configuration."""

    state_path: str = "./data/state"
    logs_path: str = "./logs"
    history_limit: int = Field(default=100, ge=1, le=10000)


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_http: bool = False
    log_http_responses: bool = False
    log_http_max_body_chars: int = Field(default=500, ge=0, le=5000)
    order_log_enabled: bool = True
    error_log_max_bytes: int = Field(default=5_000_000, ge=100_000, le=50_000_000)
    error_log_backup_count: int = Field(default=3, ge=1, le=20)


class Settings(BaseSettings):
    """Main application settings."""

    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_nested_delimiter": "__",
        "populate_by_name": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; the environment must still win.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @property
    def order_log_path(self) -> Path:
        return Path(self.storage.logs_path) / "orders.csv"


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Load settings from YAML config file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file values
    3. Default values
    """
    config_data = {}

    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.yaml")

    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            config_data = yaml.safe_load(f) or {}

    env_path = config_file.parent / ".env"
    return Settings(**config_data, _env_file=env_path)


def create_default_config(path: str | Path = "config.yaml") -> None:
    """Create a default configuration file."""
    default_config = {
        "execution": {
            "request_timeout_sec": 30,
            "recv_window": 5000,
            "client_order_prefix": "cointel",
            "allow_live_fallback_in_test_mode": False,
        },
        "strategy": {
            "intraday_prefixes": ["INTRADAY", "BB_", "RSI", "EMA", "MACD", "SCALP"],
            "multientry_prefixes": ["MULTIENTRY", "MULTI_ENTRY", "ME_"],
            "intraday_order_kind": "limit",
        },
        "storage": {
            "state_path": "./data/state",
            "logs_path": "./logs",
            "history_limit": 100,
        },
        "monitoring": {
            "log_level": "INFO",
            "log_http": False,
            "log_http_responses": False,
            "log_http_max_body_chars": 500,
            "order_log_enabled": True,
            "error_log_max_bytes": 5000000,
            "error_log_backup_count": 3,
        },
    }

    with open(path, "w") as f:
        yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)
