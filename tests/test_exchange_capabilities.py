import pytest

from src.exchanges.capabilities import (
    UNSUPPORTED,
    base_exchange_name,
    capability_of,
    futures_exchange_name,
    is_futures_exchange,
    leverage_limits,
    supported_exchange_options,
    supports_futures,
    uses_same_api,
)


def test_futures_suffix_resolves_to_base_exchange() -> None:
    assert is_futures_exchange("Binance Futures")
    assert not is_futures_exchange("Binance")
    assert base_exchange_name("Binance Futures") == "Binance"
    assert capability_of("Binance Futures") is capability_of("binance")


def test_unknown_exchange_fails_closed() -> None:
    capability = capability_of("FTX")
    assert capability is UNSUPPORTED
    assert not capability.known
    assert not capability.supports_futures
    assert capability.leverage_range is None


def test_leverage_range_only_when_configurable_via_api() -> None:
    assert leverage_limits("Binance") == (1, 125)
    assert leverage_limits("Bybit") == (1, 100)
    # MEXC leverage is set in the account UI.
    assert leverage_limits("MEXC") is None
    assert leverage_limits("Coinbase") is None


def test_same_api_exchanges_have_no_separate_futures_entry() -> None:
    assert uses_same_api("Bybit")
    assert futures_exchange_name("Bybit") is None
    assert not uses_same_api("Binance")
    assert futures_exchange_name("Binance") == "Binance Futures"
    assert futures_exchange_name("Coinbase") is None


def test_supported_exchange_options_lists_futures_variants() -> None:
    options = supported_exchange_options()
    assert "Binance" in options
    assert "Binance Futures" in options
    assert "Kraken Futures" in options
    assert "Bybit Futures" not in options
    assert "Coinbase Futures" not in options
    assert len(options) == len(set(options))


@pytest.mark.parametrize(
    "exchange,expected",
    [("Binance", True), ("Coinbase Pro", False), ("KuCoin", True), ("Nope", False)],
)
def test_supports_futures(exchange: str, expected: bool) -> None:
    assert supports_futures(exchange) is expected


def test_test_environment_table() -> None:
    assert capability_of("Binance").test_endpoint_available
    kraken = capability_of("Kraken")
    assert not kraken.test_endpoint_available
    assert not kraken.requires_separate_test_keys
