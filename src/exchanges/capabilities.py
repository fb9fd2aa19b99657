"""Static per-exchange capability metadata."""

from __future__ import annotations

from dataclasses import dataclass

FUTURES_SUFFIX = " futures"


@dataclass(frozen=True)
class ExchangeCapability:
    key: str
    name: str
    supports_futures: bool
    uses_same_api: bool
    leverage_via_api: bool = False
    leverage_min: int | None = None
    leverage_max: int | None = None
    # Test environment
    requires_separate_test_keys: bool = True
    test_endpoint_available: bool = False
    notes: str = ""

    @property
    def known(self) -> bool:
        return self.key != UNSUPPORTED.key

    @property
    def leverage_range(self) -> tuple[int, int] | None:
        if not self.leverage_via_api or self.leverage_min is None or self.leverage_max is None:
            return None
        return (self.leverage_min, self.leverage_max)


UNSUPPORTED = ExchangeCapability(
    key="",
    name="Unknown",
    supports_futures=False,
    uses_same_api=False,
    requires_separate_test_keys=False,
    notes="Exchange is not supported.",
)


EXCHANGE_CAPABILITIES: dict[str, ExchangeCapability] = {
    "binance": ExchangeCapability(
        key="binance",
        name="Binance",
        supports_futures=True,
        uses_same_api=False,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=125,
        test_endpoint_available=True,
        notes="Separate base URLs for spot (api) and USD-M futures (fapi).",
    ),
    "binance eu": ExchangeCapability(
        key="binance eu",
        name="Binance EU",
        supports_futures=True,
        uses_same_api=False,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=125,
        test_endpoint_available=True,
        notes="Binance API; trading pairs are quoted in USDC.",
    ),
    "bybit": ExchangeCapability(
        key="bybit",
        name="Bybit",
        supports_futures=True,
        uses_same_api=True,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=100,
        test_endpoint_available=True,
        notes="Unified account; the category parameter selects spot or linear.",
    ),
    "kraken": ExchangeCapability(
        key="kraken",
        name="Kraken",
        supports_futures=True,
        uses_same_api=False,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=50,
        requires_separate_test_keys=False,
        test_endpoint_available=False,
        notes="No public spot testnet; futures use a separate API and keys.",
    ),
    "kraken eu": ExchangeCapability(
        key="kraken eu",
        name="Kraken EU",
        supports_futures=True,
        uses_same_api=False,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=50,
        requires_separate_test_keys=False,
        test_endpoint_available=False,
        notes="Kraken API; trading pairs are quoted in USDC.",
    ),
    "coinbase": ExchangeCapability(
        key="coinbase",
        name="Coinbase",
        supports_futures=False,
        uses_same_api=False,
        test_endpoint_available=True,
        notes="Spot only via API.",
    ),
    "coinbase pro": ExchangeCapability(
        key="coinbase pro",
        name="Coinbase Pro",
        supports_futures=False,
        uses_same_api=False,
        test_endpoint_available=True,
        notes="Spot only via API.",
    ),
    "kucoin": ExchangeCapability(
        key="kucoin",
        name="KuCoin",
        supports_futures=True,
        uses_same_api=True,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=100,
        test_endpoint_available=True,
    ),
    "mexc": ExchangeCapability(
        key="mexc",
        name="MEXC",
        supports_futures=True,
        uses_same_api=True,
        notes="Leverage is configured in the account UI, not via API.",
    ),
    "bingx": ExchangeCapability(
        key="bingx",
        name="BingX",
        supports_futures=True,
        uses_same_api=True,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=125,
    ),
    "coinex": ExchangeCapability(
        key="coinex",
        name="CoinEx",
        supports_futures=True,
        uses_same_api=True,
        leverage_via_api=True,
        leverage_min=1,
        leverage_max=100,
    ),
}


def is_futures_exchange(exchange: str) -> bool:
    return exchange.strip().lower().endswith(FUTURES_SUFFIX)


def base_exchange_name(exchange: str) -> str:
    """Strip a trailing 'Futures' suffix ("Binance Futures" -> "Binance")."""
    trimmed = exchange.strip()
    if is_futures_exchange(trimmed):
        return trimmed[: -len(FUTURES_SUFFIX)].strip()
    return trimmed


def capability_key(exchange: str) -> str:
    return base_exchange_name(exchange).lower()


def capability_of(exchange: str) -> ExchangeCapability:
    """Look up an exchange by display name; unknown names return UNSUPPORTED."""
    return EXCHANGE_CAPABILITIES.get(capability_key(exchange), UNSUPPORTED)


def supports_futures(exchange: str) -> bool:
    return capability_of(exchange).supports_futures


def uses_same_api(exchange: str) -> bool:
    return capability_of(exchange).uses_same_api


def futures_exchange_name(exchange: str) -> str | None:
    """Return the separate "<Name> Futures" entry, if the exchange needs one."""
    capability = capability_of(exchange)
    if not capability.supports_futures or capability.uses_same_api:
        return None
    return f"{capability.name} Futures"


def supported_exchange_options() -> list[str]:
    options: list[str] = []
    for capability in EXCHANGE_CAPABILITIES.values():
        options.append(capability.name)
        if capability.supports_futures and not capability.uses_same_api:
            options.append(f"{capability.name} Futures")
    return options


def leverage_limits(exchange: str) -> tuple[int, int] | None:
    return capability_of(exchange).leverage_range
