"""Alert classification, credential resolution and position sizing."""

from __future__ import annotations

import math
from typing import Iterable

import structlog

from src.config.settings import StrategyConfig
from src.errors import (
    ConfigurationError,
    InvalidAlertError,
    NoActiveExchangeError,
    StrategyDisabledError,
    UnknownStrategyError,
)
from src.exchanges.capabilities import capability_key, is_futures_exchange
from src.models import (
    ExchangeCredentials,
    ParsedAlert,
    ResolvedCredentials,
    StrategyType,
    TradeAlert,
    TradingConfig,
)

log = structlog.get_logger(__name__)


def classify_strategy(strategy: str, config: StrategyConfig | None = None) -> StrategyType:
    """Map an alert strategy label onto intraday or multientry by prefix."""
    config = config or StrategyConfig()
    label = (strategy or "").strip().upper()
    if label:
        # Multientry first: its prefixes are the more specific ones.
        if any(label.startswith(prefix) for prefix in config.multientry_prefixes):
            return StrategyType.MULTIENTRY
        if any(label.startswith(prefix) for prefix in config.intraday_prefixes):
            return StrategyType.INTRADAY
    raise UnknownStrategyError(strategy)


def resolve_active_credentials(
    credentials: Iterable[ExchangeCredentials],
) -> ExchangeCredentials:
    active = [cred for cred in credentials if cred.is_active]
    if not active:
        raise NoActiveExchangeError()
    if len(active) > 1:
        names = ", ".join(cred.exchange for cred in active)
        raise ConfigurationError(f"More than one active exchange configured: {names}")
    return active[0]


def effective_credentials(creds: ExchangeCredentials, test_mode: bool) -> ResolvedCredentials:
    """Build the key set for one call; the stored record is left untouched."""
    use_test_keys = test_mode and creds.has_test_keys
    if test_mode and not use_test_keys:
        log.warning("test_keys_missing_using_live", exchange=creds.exchange)

    if is_futures_exchange(creds.exchange):
        market_type = "futures"
    else:
        market_type = creds.market_type or "spot"

    return ResolvedCredentials(
        credential_id=creds.id,
        exchange=creds.exchange,
        exchange_key=capability_key(creds.exchange),
        api_key=creds.test_api_key if use_test_keys else creds.api_key,
        api_secret=creds.test_api_secret if use_test_keys else creds.api_secret,
        passphrase=(creds.test_passphrase or creds.passphrase) if use_test_keys else creds.passphrase,
        market_type=market_type,
        leverage=creds.leverage,
        test_mode=test_mode,
    )


def calculate_quantity(alert: TradeAlert, config: TradingConfig) -> tuple[float, float]:
    """Return (quantity, notional) after sizing and the max-position clamp."""
    price = alert.price
    if config.order_size_type == "percentage":
        quantity = alert.quantity * config.order_size_value / 100
    else:
        if price is None or not math.isfinite(price) or price <= 0:
            raise InvalidAlertError(f"Fixed sizing needs a positive price, got {price}")
        quantity = config.order_size_value / price

    if not math.isfinite(quantity) or quantity <= 0:
        raise InvalidAlertError(f"Calculated quantity must be positive, got {quantity}")

    notional = quantity * price
    if config.max_position_size > 0 and notional > config.max_position_size:
        quantity = config.max_position_size / price
        notional = config.max_position_size
        log.info(
            "position_size_clamped",
            symbol=alert.symbol,
            max_position_size=config.max_position_size,
            quantity=quantity,
        )
    return quantity, notional


class AlertClassifier:
    """Turn an incoming alert into a sized, credential-bound ParsedAlert."""

    def __init__(self, config: StrategyConfig | None = None) -> None:
        self.config = config or StrategyConfig()

    def parse(
        self,
        alert: TradeAlert,
        config: TradingConfig,
        credentials: Iterable[ExchangeCredentials],
    ) -> ParsedAlert:
        strategy_type = classify_strategy(alert.strategy, self.config)
        if not config.is_enabled(strategy_type):
            raise StrategyDisabledError(alert.strategy, strategy_type.value)

        resolved = effective_credentials(
            resolve_active_credentials(credentials), config.test_mode
        )

        if strategy_type is StrategyType.MULTIENTRY:
            # Leg sizes come from the level string, not from order sizing.
            quantity = alert.quantity
            notional = alert.quantity * alert.price
        else:
            quantity, notional = calculate_quantity(alert, config)

        parsed = ParsedAlert(
            alert=alert,
            strategy_type=strategy_type,
            calculated_quantity=quantity,
            calculated_price=alert.price,
            order_value=notional,
            credentials=resolved,
            test_mode=config.test_mode,
        )
        log.info(
            "alert_parsed",
            alert_id=alert.id,
            strategy=alert.strategy,
            strategy_type=strategy_type.value,
            exchange=resolved.exchange,
            quantity=quantity,
            order_value=notional,
            test_mode=config.test_mode,
        )
        return parsed
