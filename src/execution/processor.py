"""Top-level alert handling: store, route, execute, record."""

from __future__ import annotations

from typing import Iterable

import orjson
import structlog

from src.config.settings import Settings
from src.errors import InvalidAlertError, TradingError
from src.execution.engine import ExecutionEngine
from src.execution.lifecycle import PositionLifecycleManager
from src.execution.state_store import TradeStateStore
from src.models import (
    CloseResult,
    ExchangeCredentials,
    ExchangeOrderResponse,
    MultientryOrder,
    OrderIntent,
    ParsedAlert,
    StrategyType,
    TradeAlert,
    TradingConfig,
    utc_now,
)
from src.strategy.classifier import AlertClassifier
from src.strategy.multientry import is_close_alert, parse_close_alert, parse_multientry_alert


class AlertProcessor:
    """Drive one alert from arrival to a recorded outcome."""

    def __init__(
        self,
        settings: Settings,
        store: TradeStateStore,
        engine: ExecutionEngine,
        lifecycle: PositionLifecycleManager | None = None,
        classifier: AlertClassifier | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.engine = engine
        self.lifecycle = lifecycle or PositionLifecycleManager(engine, store)
        self.classifier = classifier or AlertClassifier(settings.strategy)
        self.log = structlog.get_logger(__name__)

    async def handle_alert(
        self,
        alert: TradeAlert,
        config: TradingConfig | None = None,
        credentials: Iterable[ExchangeCredentials] | None = None,
    ) -> TradeAlert:
        """Store the alert; execute it straight away only in AUTO mode."""
        config = config or self.store.load_trading_config()
        self.store.append_alert(alert)
        self.log.info(
            "alert_received",
            alert_id=alert.id,
            symbol=alert.symbol,
            side=alert.side,
            strategy=alert.strategy,
            mode=config.mode,
        )
        if config.mode != "AUTO":
            self.log.info("alert_awaiting_manual_review", alert_id=alert.id)
            return alert
        return await self.process_alert(alert, config, credentials)

    async def execute_pending(
        self,
        alert_id: str,
        config: TradingConfig | None = None,
        credentials: Iterable[ExchangeCredentials] | None = None,
    ) -> TradeAlert:
        """Manually execute an alert that is still pending."""
        alert = self._pending_alert(alert_id)
        return await self.process_alert(alert, config, credentials)

    def ignore_alert(self, alert_id: str) -> TradeAlert:
        alert = self._pending_alert(alert_id)
        alert.status = "ignored"
        self.store.update_alert(alert)
        self.log.info("alert_ignored", alert_id=alert_id)
        return alert

    async def process_alert(
        self,
        alert: TradeAlert,
        config: TradingConfig | None = None,
        credentials: Iterable[ExchangeCredentials] | None = None,
    ) -> TradeAlert:
        config = config or self.store.load_trading_config()
        if credentials is None:
            credentials = self.store.load_credentials()
        try:
            parsed = self.classifier.parse(alert, config, credentials)
            if parsed.strategy_type is StrategyType.MULTIENTRY:
                if is_close_alert(alert.alert):
                    await self._close_multientry(parsed)
                else:
                    await self._open_multientry(parsed, config)
            else:
                await self._execute_single(parsed)
        except TradingError as exc:
            alert.status = "failed"
            alert.error = str(exc)
            alert.raw_response = getattr(exc, "raw_response", None) or alert.raw_response
            self.store.update_alert(alert)
            self.log.error(
                "alert_failed",
                alert_id=alert.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        self.store.update_alert(alert)
        return alert

    async def _execute_single(self, parsed: ParsedAlert) -> ExchangeOrderResponse:
        alert = parsed.alert
        intent = OrderIntent(
            symbol=parsed.symbol,
            side=parsed.side,
            order_kind=self.settings.strategy.intraday_order_kind,
            quantity=parsed.calculated_quantity,
            price=parsed.calculated_price,
            client_order_id=self.engine.client_order_id(),
        )
        payload = self.engine.build_payload(parsed, intent)
        response = await self.engine.execute(parsed, intent, payload)
        alert.raw_response = response.raw_response
        if response.accepted:
            alert.status = "executed"
            alert.executed_price = response.executed_price
            alert.executed_at = utc_now()
            alert.error = None
        else:
            alert.status = "failed"
            alert.error = response.error or f"Order {response.status}"
        return response

    async def _open_multientry(self, parsed: ParsedAlert, config: TradingConfig) -> MultientryOrder:
        alert = parsed.alert
        plan = parse_multientry_alert(alert.alert or "", config.multientry_base_amount)
        order = await self.lifecycle.open_position(parsed, plan)
        alert.raw_response = orjson.dumps(order.to_dict()).decode("utf-8")
        live_legs = [leg for leg in order.legs if leg.status in ("filled", "pending")]
        if live_legs:
            alert.status = "executed"
            alert.executed_at = utc_now()
            first_fill = next((leg for leg in order.legs if leg.status == "filled"), None)
            alert.executed_price = first_fill.filled_price if first_fill else None
            alert.error = None
        else:
            alert.status = "failed"
            alert.error = "; ".join(
                f"{leg.name}: {leg.error or leg.status}" for leg in order.legs
            )
        return order

    async def _close_multientry(self, parsed: ParsedAlert) -> CloseResult:
        alert = parsed.alert
        signal = parse_close_alert(alert.alert or "")
        result = await self.lifecycle.close_position(parsed, signal)
        alert.raw_response = orjson.dumps(
            {
                "correlation_id": result.correlation_id,
                "reason": result.reason,
                "closed": result.closed,
                "cancelled": result.cancelled,
                "errors": list(result.errors),
            }
        ).decode("utf-8")
        if result.success:
            alert.status = "executed"
            alert.executed_at = utc_now()
            alert.error = None
        else:
            alert.status = "failed"
            alert.error = "; ".join(result.errors)
        return result

    def _pending_alert(self, alert_id: str) -> TradeAlert:
        alert = self.store.get_alert(alert_id)
        if alert is None:
            raise InvalidAlertError(f"Alert not found: {alert_id}")
        if alert.status != "pending":
            raise InvalidAlertError(f"Alert {alert_id} is already {alert.status}")
        return alert
