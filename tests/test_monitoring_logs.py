import csv
import logging
from logging.handlers import RotatingFileHandler

import structlog

from src.models import ExchangeOrderResponse
from src.monitoring.logging import configure_logging, redact_secrets
from src.monitoring.metrics import Metrics
from src.monitoring.order_log import OrderLogger


def _read_rows(path) -> list[dict[str, str]]:
    with open(path, newline="") as handle:
        return list(csv.DictReader(handle))


def test_order_logger_appends_orders_and_failures(workspace_tmp_path) -> None:
    log_path = workspace_tmp_path / "logs" / "orders.csv"
    logger = OrderLogger(log_path)

    logger.log_order(
        ExchangeOrderResponse(
            order_id="42",
            symbol="BTCUSDT",
            side="BUY",
            quantity=0.5,
            price=50000.0,
            status="filled",
            executed_quantity=0.5,
            executed_price=50010.0,
            exchange="Binance",
            client_order_id="cointel_1",
        ),
        order_kind="market",
        alert_id="a1",
    )
    logger.log_failure("Bybit", "ETHUSDT", "SELL", "Request timeout", alert_id="a2")

    rows = _read_rows(log_path)
    assert len(rows) == 2
    assert rows[0]["order_id"] == "42"
    assert rows[0]["status"] == "filled"
    assert float(rows[0]["executed_price"]) == 50010.0
    assert rows[1]["event_type"] == "order_error"
    assert rows[1]["status"] == "rejected"
    assert rows[1]["error"] == "Request timeout"
    assert rows[1]["quantity"] == ""


def test_order_logger_keeps_existing_file(workspace_tmp_path) -> None:
    log_path = workspace_tmp_path / "orders.csv"
    OrderLogger(log_path).log_failure("Binance", "BTCUSDT", "BUY", "boom")
    OrderLogger(log_path).log_failure("Binance", "BTCUSDT", "BUY", "boom again")
    assert [row["error"] for row in _read_rows(log_path)] == ["boom", "boom again"]


def test_redact_secrets_processor() -> None:
    event = redact_secrets(None, "info", {"event": "x", "api_secret": "s", "api_key": "k"})
    assert event["api_secret"] == "<redacted>"
    assert event["api_key"] == "k"


def test_configure_logging_creates_error_log(workspace_tmp_path) -> None:
    configure_logging("INFO", str(workspace_tmp_path / "logs"))
    try:
        structlog.get_logger("test").error("order_failed", api_secret="hunter2")
        error_log = workspace_tmp_path / "logs" / "errors.log"
        assert error_log.exists()
        content = error_log.read_text(encoding="utf-8")
        assert "order_failed" in content
        assert "hunter2" not in content
    finally:
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, RotatingFileHandler):
                root.removeHandler(handler)
                handler.close()
        structlog.reset_defaults()


def test_metrics_use_private_registries() -> None:
    first = Metrics()
    second = Metrics()
    first.orders_submitted_total.labels(exchange="Binance", status="filled").inc()
    assert first.sample("orders_submitted_total", {"exchange": "Binance", "status": "filled"}) == 1.0
    assert second.sample("orders_submitted_total", {"exchange": "Binance", "status": "filled"}) == 0.0
