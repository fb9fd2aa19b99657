"""Base URLs and order paths per exchange, market type and environment."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.config.settings import ExecutionConfig
from src.errors import ConfigurationError, UnsupportedExchangeError
from src.models import MarketType

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MarketEndpoints:
    live_url: str
    test_url: str | None
    order_path: str
    cancel_path: str | None = None
    cancel_method: str = "POST"


@dataclass(frozen=True)
class ResolvedEndpoint:
    base_url: str
    order_path: str
    cancel_path: str
    cancel_method: str
    is_test: bool

    @property
    def order_url(self) -> str:
        return f"{self.base_url}{self.order_path}"

    def cancel_url(self, order_id: str) -> str:
        return f"{self.base_url}{self.cancel_path.format(order_id=order_id)}"


def derive_cancel_path(order_path: str) -> str:
    """Map an order path to its cancel counterpart (".../order" -> ".../cancelOrder")."""
    if order_path.endswith("/order"):
        return order_path[: -len("order")] + "cancelOrder"
    if order_path.endswith("/create"):
        return order_path[: -len("create")] + "cancel"
    if order_path.endswith("AddOrder"):
        return order_path[: -len("AddOrder")] + "CancelOrder"
    raise ConfigurationError(f"No cancel path convention for {order_path}")


_BINANCE_SPOT = MarketEndpoints(
    live_url="https://api.binance.com",
    test_url="https://testnet.binance.vision",
    order_path="/api/v3/order",
    cancel_path="/api/v3/order",
    cancel_method="DELETE",
)
_BINANCE_FUTURES = MarketEndpoints(
    live_url="https://fapi.binance.com",
    test_url="https://testnet.binancefuture.com",
    order_path="/fapi/v1/order",
    cancel_path="/fapi/v1/order",
    cancel_method="DELETE",
)
_BYBIT = MarketEndpoints(
    live_url="https://api.bybit.com",
    test_url="https://api-testnet.bybit.com",
    order_path="/v5/order/create",
)
_KRAKEN_SPOT = MarketEndpoints(
    live_url="https://api.kraken.com",
    test_url=None,
    order_path="/0/private/AddOrder",
)
_COINBASE = MarketEndpoints(
    live_url="https://api.exchange.coinbase.com",
    test_url="https://api-public.sandbox.exchange.coinbase.com",
    order_path="/orders",
    cancel_path="/orders/{order_id}",
    cancel_method="DELETE",
)

EXCHANGE_ENDPOINTS: dict[str, dict[str, MarketEndpoints]] = {
    "binance": {"spot": _BINANCE_SPOT, "futures": _BINANCE_FUTURES},
    "binance eu": {"spot": _BINANCE_SPOT, "futures": _BINANCE_FUTURES},
    "bybit": {"spot": _BYBIT, "futures": _BYBIT},
    "kraken": {"spot": _KRAKEN_SPOT},
    "kraken eu": {"spot": _KRAKEN_SPOT},
    "coinbase": {"spot": _COINBASE},
    "coinbase pro": {"spot": _COINBASE},
    "kucoin": {
        "spot": MarketEndpoints(
            live_url="https://api.kucoin.com",
            test_url="https://openapi-sandbox.kucoin.com",
            order_path="/api/v1/orders",
            cancel_path="/api/v1/orders/{order_id}",
            cancel_method="DELETE",
        ),
        "futures": MarketEndpoints(
            live_url="https://api-futures.kucoin.com",
            test_url="https://api-sandbox-futures.kucoin.com",
            order_path="/api/v1/orders",
            cancel_path="/api/v1/orders/{order_id}",
            cancel_method="DELETE",
        ),
    },
    "mexc": {
        "spot": MarketEndpoints(
            live_url="https://api.mexc.com",
            test_url=None,
            order_path="/api/v3/order",
            cancel_path="/api/v3/order",
            cancel_method="DELETE",
        ),
    },
    "bingx": {
        "spot": MarketEndpoints(
            live_url="https://open-api.bingx.com",
            test_url=None,
            order_path="/openApi/spot/v1/trade/order",
            cancel_path="/openApi/spot/v1/trade/cancel",
        ),
        "futures": MarketEndpoints(
            live_url="https://open-api.bingx.com",
            test_url="https://open-api-vst.bingx.com",
            order_path="/openApi/swap/v2/trade/order",
            cancel_path="/openApi/swap/v2/trade/order",
            cancel_method="DELETE",
        ),
    },
    "coinex": {
        "spot": MarketEndpoints(
            live_url="https://api.coinex.com",
            test_url=None,
            order_path="/v2/spot/order",
            cancel_path="/v2/spot/cancel-order",
        ),
        "futures": MarketEndpoints(
            live_url="https://api.coinex.com",
            test_url=None,
            order_path="/v2/futures/order",
            cancel_path="/v2/futures/cancel-order",
        ),
    },
}


def resolve_endpoint(
    exchange_key: str,
    market_type: MarketType,
    test_mode: bool,
    config: ExecutionConfig | None = None,
) -> ResolvedEndpoint:
    """Pick the base URL and paths for {exchange, spot|futures, live|test}."""
    config = config or ExecutionConfig()
    markets = EXCHANGE_ENDPOINTS.get(exchange_key)
    if markets is None:
        raise UnsupportedExchangeError(exchange_key)
    endpoints = markets.get(market_type)
    if endpoints is None:
        raise UnsupportedExchangeError(exchange_key, f"{market_type} trading is not supported")

    environment = "test" if test_mode else "live"
    override = config.endpoint_overrides.get(f"{exchange_key}:{market_type}:{environment}")
    is_test = test_mode
    if override:
        base_url = override
    elif test_mode and endpoints.test_url:
        base_url = endpoints.test_url
    elif test_mode:
        if not config.allow_live_fallback_in_test_mode:
            raise ConfigurationError(f"Test endpoint not configured for exchange: {exchange_key}")
        log.warning(
            "test_endpoint_unavailable_using_live",
            exchange=exchange_key,
            market_type=market_type,
        )
        base_url = endpoints.live_url
        is_test = False
    else:
        base_url = endpoints.live_url

    cancel_path = endpoints.cancel_path or derive_cancel_path(endpoints.order_path)
    return ResolvedEndpoint(
        base_url=base_url.rstrip("/"),
        order_path=endpoints.order_path,
        cancel_path=cancel_path,
        cancel_method=endpoints.cancel_method,
        is_test=is_test,
    )
