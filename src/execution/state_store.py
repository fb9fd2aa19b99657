"""Persist alerts, multientry positions, credentials and trading config."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import orjson
import structlog

from src.models import ExchangeCredentials, MultientryOrder, TradeAlert, TradingConfig

log = structlog.get_logger(__name__)


class TradeStateStore(Protocol):
    """Narrow read/write contract the execution core depends on."""

    def append_alert(self, alert: TradeAlert) -> None: ...

    def update_alert(self, alert: TradeAlert) -> None: ...

    def get_alert(self, alert_id: str) -> TradeAlert | None: ...

    def list_alerts(self, limit: int | None = None) -> list[TradeAlert]: ...

    def save_multientry_order(self, order: MultientryOrder) -> None: ...

    def get_multientry_order(self, correlation_id: str) -> MultientryOrder | None: ...

    def load_credentials(self) -> list[ExchangeCredentials]: ...

    def save_credentials(self, credentials: ExchangeCredentials) -> None: ...

    def remove_credentials(self, credential_id: str) -> None: ...

    def load_trading_config(self) -> TradingConfig: ...

    def save_trading_config(self, config: TradingConfig) -> None: ...


def _upsert_credentials(
    existing: list[ExchangeCredentials], credentials: ExchangeCredentials
) -> list[ExchangeCredentials]:
    # Activating one exchange deactivates the others.
    updated = [cred for cred in existing if cred.id != credentials.id]
    if credentials.is_active:
        for cred in updated:
            cred.is_active = False
    updated.append(credentials)
    return updated


class InMemoryStateStore:
    """Dict-backed store for tests and embedding."""

    def __init__(self, history_limit: int = 100) -> None:
        self.history_limit = history_limit
        self._alerts: list[TradeAlert] = []
        self._orders: dict[str, MultientryOrder] = {}
        self._credentials: list[ExchangeCredentials] = []
        self._config = TradingConfig()

    def append_alert(self, alert: TradeAlert) -> None:
        self._alerts.insert(0, alert)
        del self._alerts[self.history_limit :]

    def update_alert(self, alert: TradeAlert) -> None:
        for index, existing in enumerate(self._alerts):
            if existing.id == alert.id:
                self._alerts[index] = alert
                return
        self.append_alert(alert)

    def get_alert(self, alert_id: str) -> TradeAlert | None:
        return next((alert for alert in self._alerts if alert.id == alert_id), None)

    def list_alerts(self, limit: int | None = None) -> list[TradeAlert]:
        return list(self._alerts if limit is None else self._alerts[:limit])

    def save_multientry_order(self, order: MultientryOrder) -> None:
        self._orders[order.correlation_id] = order

    def get_multientry_order(self, correlation_id: str) -> MultientryOrder | None:
        return self._orders.get(correlation_id)

    def load_credentials(self) -> list[ExchangeCredentials]:
        return list(self._credentials)

    def save_credentials(self, credentials: ExchangeCredentials) -> None:
        self._credentials = _upsert_credentials(self._credentials, credentials)

    def remove_credentials(self, credential_id: str) -> None:
        self._credentials = [cred for cred in self._credentials if cred.id != credential_id]

    def load_trading_config(self) -> TradingConfig:
        return TradingConfig.from_dict(self._config.to_dict())

    def save_trading_config(self, config: TradingConfig) -> None:
        self._config = TradingConfig.from_dict(config.to_dict())


class JsonStateStore:
    """orjson file per collection under `state_path`; alerts are kept newest first."""

    def __init__(self, state_path: str | Path, history_limit: int = 100) -> None:
        self.state_path = Path(state_path)
        self.state_path.mkdir(parents=True, exist_ok=True)
        self.history_limit = history_limit
        self._alerts_file = self.state_path / "alerts.json"
        self._orders_file = self.state_path / "multientry_orders.json"
        self._credentials_file = self.state_path / "credentials.json"
        self._config_file = self.state_path / "trading_config.json"

    def append_alert(self, alert: TradeAlert) -> None:
        alerts = [alert.to_dict(), *self._load(self._alerts_file, [])]
        self._save(self._alerts_file, alerts[: self.history_limit])

    def update_alert(self, alert: TradeAlert) -> None:
        alerts = self._load(self._alerts_file, [])
        for index, existing in enumerate(alerts):
            if existing.get("id") == alert.id:
                alerts[index] = alert.to_dict()
                self._save(self._alerts_file, alerts)
                return
        self.append_alert(alert)

    def get_alert(self, alert_id: str) -> TradeAlert | None:
        for data in self._load(self._alerts_file, []):
            if data.get("id") == alert_id:
                return TradeAlert.from_dict(data)
        return None

    def list_alerts(self, limit: int | None = None) -> list[TradeAlert]:
        alerts = self._load(self._alerts_file, [])
        if limit is not None:
            alerts = alerts[:limit]
        return [TradeAlert.from_dict(data) for data in alerts]

    def save_multientry_order(self, order: MultientryOrder) -> None:
        orders = self._load(self._orders_file, {})
        orders[order.correlation_id] = order.to_dict()
        self._save(self._orders_file, orders)

    def get_multientry_order(self, correlation_id: str) -> MultientryOrder | None:
        data = self._load(self._orders_file, {}).get(correlation_id)
        return MultientryOrder.from_dict(data) if data else None

    def load_credentials(self) -> list[ExchangeCredentials]:
        return [ExchangeCredentials.from_dict(data) for data in self._load(self._credentials_file, [])]

    def save_credentials(self, credentials: ExchangeCredentials) -> None:
        updated = _upsert_credentials(self.load_credentials(), credentials)
        self._save(self._credentials_file, [cred.to_dict() for cred in updated])

    def remove_credentials(self, credential_id: str) -> None:
        remaining = [cred for cred in self.load_credentials() if cred.id != credential_id]
        self._save(self._credentials_file, [cred.to_dict() for cred in remaining])

    def load_trading_config(self) -> TradingConfig:
        data = self._load(self._config_file, {})
        return TradingConfig.from_dict(data) if data else TradingConfig()

    def save_trading_config(self, config: TradingConfig) -> None:
        self._save(self._config_file, config.to_dict())

    def _load(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            with open(path, "rb") as f:
                data = orjson.loads(f.read())
        except (OSError, orjson.JSONDecodeError) as exc:
            log.warning("state_file_unreadable", path=str(path), error=str(exc))
            return default
        return data if isinstance(data, type(default)) else default

    def _save(self, path: Path, data: Any) -> None:
        tmp = path.with_suffix(".tmp")
        with open(tmp, "wb") as f:
            f.write(orjson.dumps(data))
        tmp.replace(path)
