"""Order CSV logger."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from src.models import ExchangeOrderResponse, utc_now


class OrderLogger:
    """Append every order and cancel outcome to a CSV file."""

    def __init__(self, log_path: str | Path) -> None:
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_header()

    def log_order(
        self,
        response: ExchangeOrderResponse,
        order_kind: str = "",
        alert_id: str = "",
        context: str = "order",
    ) -> None:
        self._append_row(
            {
                "timestamp": response.timestamp.isoformat(),
                "event_type": context,
                "alert_id": alert_id,
                "exchange": response.exchange,
                "symbol": response.symbol,
                "side": response.side,
                "order_type": order_kind,
                "client_order_id": response.client_order_id or "",
                "order_id": response.order_id,
                "quantity": response.quantity,
                "price": response.price,
                "status": response.status,
                "executed_quantity": response.executed_quantity,
                "executed_price": response.executed_price,
                "error": response.error or "",
            }
        )

    def log_failure(
        self,
        exchange: str,
        symbol: str,
        side: str,
        error: str,
        order_kind: str = "",
        alert_id: str = "",
        context: str = "order_error",
        order_id: str = "",
    ) -> None:
        self._append_row(
            {
                "timestamp": utc_now().isoformat(),
                "event_type": context,
                "alert_id": alert_id,
                "exchange": exchange,
                "symbol": symbol,
                "side": side,
                "order_type": order_kind,
                "order_id": order_id,
                "status": "rejected",
                "error": error,
            }
        )

    def _ensure_header(self) -> None:
        if self.log_path.exists():
            return
        with open(self.log_path, "w", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self._fieldnames())
            writer.writeheader()

    def _append_row(self, row: dict[str, Any]) -> None:
        with open(self.log_path, "a", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self._fieldnames(), restval="")
            writer.writerow(row)

    @staticmethod
    def _fieldnames() -> list[str]:
        return [
            "timestamp",
            "event_type",
            "alert_id",
            "exchange",
            "symbol",
            "side",
            "order_type",
            "client_order_id",
            "order_id",
            "quantity",
            "price",
            "status",
            "executed_quantity",
            "executed_price",
            "error",
        ]
