import pytest

from src.config.settings import ExecutionConfig
from src.errors import ConfigurationError, UnsupportedExchangeError
from src.exchanges.adapters import (
    BybitAdapter,
    HeaderAuthAdapter,
    KrakenAdapter,
    QueryStringAdapter,
    get_adapter,
)
from src.exchanges.endpoints import derive_cancel_path, resolve_endpoint


def test_binance_spot_and_futures_use_different_hosts() -> None:
    spot = resolve_endpoint("binance", "spot", test_mode=False)
    futures = resolve_endpoint("binance", "futures", test_mode=False)
    assert spot.order_url == "https://api.binance.com/api/v3/order"
    assert futures.order_url == "https://fapi.binance.com/fapi/v1/order"
    assert futures.cancel_method == "DELETE"


def test_test_mode_selects_testnet() -> None:
    endpoint = resolve_endpoint("bybit", "futures", test_mode=True)
    assert endpoint.base_url == "https://api-testnet.bybit.com"
    assert endpoint.is_test
    assert endpoint.cancel_path == "/v5/order/cancel"


def test_test_mode_without_testnet_falls_back_to_live_when_allowed() -> None:
    config = ExecutionConfig(allow_live_fallback_in_test_mode=True)
    endpoint = resolve_endpoint("kraken", "spot", test_mode=True, config=config)
    assert endpoint.base_url == "https://api.kraken.com"
    assert not endpoint.is_test


def test_test_mode_without_testnet_is_refused_by_default() -> None:
    for exchange_key in ("mexc", "kraken", "coinex"):
        with pytest.raises(ConfigurationError):
            resolve_endpoint(exchange_key, "spot", test_mode=True)
    with pytest.raises(ConfigurationError):
        resolve_endpoint("bingx", "spot", test_mode=True, config=ExecutionConfig())


def test_endpoint_override() -> None:
    config = ExecutionConfig(endpoint_overrides={"binance:spot:live": "http://localhost:9000/"})
    endpoint = resolve_endpoint("binance", "spot", test_mode=False, config=config)
    assert endpoint.order_url == "http://localhost:9000/api/v3/order"


def test_unsupported_market_or_exchange() -> None:
    with pytest.raises(UnsupportedExchangeError):
        resolve_endpoint("kraken", "futures", test_mode=False)
    with pytest.raises(UnsupportedExchangeError):
        resolve_endpoint("ftx", "spot", test_mode=False)


def test_cancel_path_convention() -> None:
    assert derive_cancel_path("/api/v3/order") == "/api/v3/cancelOrder"
    assert derive_cancel_path("/v5/order/create") == "/v5/order/cancel"
    assert derive_cancel_path("/0/private/AddOrder") == "/0/private/CancelOrder"
    coinbase = resolve_endpoint("coinbase", "spot", test_mode=False)
    assert coinbase.cancel_url("abc") == "https://api.exchange.coinbase.com/orders/abc"


@pytest.mark.parametrize(
    "exchange,adapter_cls",
    [
        ("Binance", QueryStringAdapter),
        ("Binance EU", QueryStringAdapter),
        ("MEXC", QueryStringAdapter),
        ("BingX Futures", QueryStringAdapter),
        ("Bybit", BybitAdapter),
        ("Kraken EU", KrakenAdapter),
        ("Coinbase Pro", HeaderAuthAdapter),
        ("KuCoin", HeaderAuthAdapter),
        ("CoinEx", HeaderAuthAdapter),
    ],
)
def test_every_supported_exchange_has_an_adapter(exchange: str, adapter_cls: type) -> None:
    assert isinstance(get_adapter(exchange), adapter_cls)


def test_unknown_exchange_has_no_adapter() -> None:
    with pytest.raises(UnsupportedExchangeError):
        get_adapter("FOOBAR")
