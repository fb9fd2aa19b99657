from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from src.config.settings import Settings, StrategyConfig, create_default_config, load_settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.execution.request_timeout_sec == 30.0
    assert settings.execution.client_order_prefix == "cointel"
    assert settings.strategy.intraday_order_kind == "limit"
    assert settings.storage.history_limit == 100
    assert settings.order_log_path.name == "orders.csv"


def test_load_settings_from_yaml(workspace_tmp_path) -> None:
    config_path = workspace_tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "execution": {"request_timeout_sec": 10, "client_order_prefix": "acme"},
                "strategy": {"intraday_prefixes": ["swing_"]},
            }
        )
    )

    settings = load_settings(config_path)

    assert settings.execution.request_timeout_sec == 10
    assert settings.execution.client_order_prefix == "acme"
    assert settings.strategy.intraday_prefixes == ["SWING_"]


def test_environment_overrides_yaml(workspace_tmp_path, monkeypatch) -> None:
    config_path = workspace_tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"monitoring": {"log_level": "INFO"}}))
    monkeypatch.setenv("MONITORING__LOG_LEVEL", "DEBUG")

    settings = load_settings(config_path)

    assert settings.monitoring.log_level == "DEBUG"


def test_missing_config_file_uses_defaults(workspace_tmp_path) -> None:
    settings = load_settings(workspace_tmp_path / "missing.yaml")
    assert settings.execution.recv_window == 5000


def test_default_config_round_trips(workspace_tmp_path) -> None:
    path = workspace_tmp_path / "config.yaml"
    create_default_config(path)
    settings = load_settings(path)
    assert settings.strategy.multientry_prefixes == ["MULTIENTRY", "MULTI_ENTRY", "ME_"]


def test_prefix_tables_cannot_be_empty() -> None:
    with pytest.raises(ValidationError):
        StrategyConfig(intraday_prefixes=[" "])
