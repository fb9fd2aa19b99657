"""Open and close multi-leg (multientry) positions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.errors import PositionNotFoundError, TradingError
from src.execution.engine import ExecutionEngine
from src.execution.state_store import TradeStateStore
from src.models import (
    CloseResult,
    CloseSignal,
    ExchangeOrderResponse,
    LegRecord,
    MultientryOrder,
    MultientryPlan,
    OrderIntent,
    ParsedAlert,
    opposite_side,
)

if TYPE_CHECKING:
    from src.monitoring.metrics import Metrics


def apply_leg_response(leg: LegRecord, response: ExchangeOrderResponse) -> None:
    """Fold a normalized order response into the leg's status."""
    leg.order_id = response.order_id
    leg.client_order_id = response.client_order_id
    leg.raw_response = response.raw_response
    if response.status == "filled":
        leg.status = "filled"
        leg.filled_quantity = response.executed_quantity or leg.quantity
        leg.filled_price = response.executed_price
    elif response.status == "partial" and response.executed_quantity > 0:
        # The executed part is the position; the rest stays on the book until close.
        leg.status = "filled"
        leg.filled_quantity = response.executed_quantity
        leg.filled_price = response.executed_price
        leg.remainder_open = True
    elif response.status == "partial":
        leg.status = "pending"
    elif response.status == "cancelled":
        leg.status = "cancelled"
    else:
        leg.status = "rejected"
        leg.error = response.error or "rejected by exchange"


class PositionLifecycleManager:
    """Fan a multientry plan out into legs, and unwind them on TP/SL."""

    def __init__(
        self,
        engine: ExecutionEngine,
        store: TradeStateStore,
        metrics: Metrics | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self._metrics = metrics
        self.log = structlog.get_logger(__name__)

    async def open_position(self, parsed: ParsedAlert, plan: MultientryPlan) -> MultientryOrder:
        order = MultientryOrder(
            correlation_id=plan.correlation_id,
            alert_id=parsed.alert.id,
            symbol=parsed.symbol,
            exchange=parsed.exchange,
            side=parsed.side,
        )
        if self.store.get_multientry_order(plan.correlation_id) is not None:
            self.log.warning("multientry_id_reused", correlation_id=plan.correlation_id)

        # Legs go out strictly one after another, L1 first.
        for level in plan.levels:
            leg = LegRecord(
                level=level.level,
                quantity=level.quantity,
                price=level.price,
                order_kind=level.order_kind,
            )
            intent = OrderIntent(
                symbol=parsed.symbol,
                side=parsed.side,
                order_kind=level.order_kind,
                quantity=level.quantity,
                price=level.price,
                client_order_id=self.engine.client_order_id(level.name),
            )
            try:
                response = await self.engine.submit(parsed, intent)
            except TradingError as exc:
                leg.status = "rejected"
                leg.error = str(exc)
                leg.raw_response = getattr(exc, "raw_response", None)
                self.log.warning(
                    "leg_failed",
                    correlation_id=plan.correlation_id,
                    level=level.name,
                    error=str(exc),
                )
            else:
                apply_leg_response(leg, response)
                self.log.info(
                    "leg_submitted",
                    correlation_id=plan.correlation_id,
                    level=level.name,
                    status=leg.status,
                    order_id=leg.order_id,
                )
            order.legs.append(leg)
            if self._metrics:
                self._metrics.multientry_legs_total.labels(level=level.name, status=leg.status).inc()

        self.store.save_multientry_order(order)
        self.log.info(
            "multientry_opened",
            correlation_id=order.correlation_id,
            symbol=order.symbol,
            legs={leg.name: leg.status for leg in order.legs},
        )
        return order

    async def close_position(self, parsed: ParsedAlert, signal: CloseSignal) -> CloseResult:
        order = self.store.get_multientry_order(signal.correlation_id)
        if order is None:
            raise PositionNotFoundError(signal.correlation_id)

        legs = sorted(order.legs, key=lambda leg: leg.level)
        close_side = opposite_side(order.side)
        closed = 0
        cancelled = 0
        errors: list[str] = []

        for leg in legs:
            if leg.status != "filled" or leg.filled_quantity <= 0 or leg.closed_order_id:
                continue
            intent = OrderIntent(
                symbol=order.symbol,
                side=close_side,
                order_kind="market",
                quantity=leg.filled_quantity,
                price=leg.filled_price or leg.price,
                client_order_id=self.engine.client_order_id(f"X{leg.level}"),
            )
            try:
                response = await self.engine.submit(parsed, intent)
            except TradingError as exc:
                leg.close_raw_response = getattr(exc, "raw_response", None)
                errors.append(f"{leg.name} close failed: {exc}")
                continue
            leg.close_raw_response = response.raw_response
            if not response.accepted:
                errors.append(f"{leg.name} close failed: {response.error or response.status}")
                continue
            leg.closed_order_id = response.order_id
            closed += 1

        for leg in legs:
            resting_remainder = leg.status == "filled" and leg.remainder_open
            if leg.status != "pending" and not resting_remainder:
                continue
            if leg.order_id:
                try:
                    await self.engine.cancel(parsed, order.symbol, leg.order_id)
                except TradingError as exc:
                    errors.append(f"{leg.name} cancel failed: {exc}")
                else:
                    cancelled += 1
                    leg.remainder_open = False
            if leg.status == "pending":
                leg.status = "cancelled"

        self.store.save_multientry_order(order)
        result = CloseResult(
            correlation_id=order.correlation_id,
            reason=signal.reason,
            closed=closed,
            cancelled=cancelled,
            errors=tuple(errors),
        )
        log_method = self.log.info if result.success else self.log.warning
        log_method(
            "multientry_closed",
            correlation_id=order.correlation_id,
            reason=signal.reason,
            closed=closed,
            cancelled=cancelled,
            errors=list(errors),
        )
        return result
