"""Alert classification, sizing and multientry parsing."""

from src.strategy.classifier import (
    AlertClassifier,
    calculate_quantity,
    classify_strategy,
    effective_credentials,
    resolve_active_credentials,
)
from src.strategy.multientry import (
    is_close_alert,
    parse_close_alert,
    parse_multientry_alert,
)

__all__ = [
    # Classification
    "AlertClassifier",
    "classify_strategy",
    "resolve_active_credentials",
    "effective_credentials",
    "calculate_quantity",
    # Multientry
    "parse_multientry_alert",
    "parse_close_alert",
    "is_close_alert",
]
