"""Monitoring utilities."""

from src.monitoring.logging import configure_logging
from src.monitoring.metrics import Metrics
from src.monitoring.order_log import OrderLogger

__all__ = [
    "configure_logging",
    "Metrics",
    "OrderLogger",
]
