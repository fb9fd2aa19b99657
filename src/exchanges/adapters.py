"""One adapter per exchange family: build payload, sign, normalize."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.config.settings import ExecutionConfig
from src.errors import UnsupportedExchangeError
from src.exchanges.capabilities import ExchangeCapability, capability_of
from src.exchanges.endpoints import ResolvedEndpoint, resolve_endpoint
from src.exchanges.payloads import build_cancel_payload, build_order_payload
from src.exchanges.responses import ResponseBody, normalize_response
from src.exchanges.signing import (
    GenericHeaderSigner,
    HeaderHmacSigner,
    NoncePathHmacSigner,
    QueryStringHmacSigner,
    SignedRequest,
    Signer,
    UnsignedRequest,
)
from src.models import ExchangeOrderResponse, OrderIntent, ResolvedCredentials


class ExchangeAdapter(ABC):
    """Stable seam between the execution engine and exchange quirks."""

    family: str = ""

    def __init__(self, capability: ExchangeCapability, config: ExecutionConfig) -> None:
        self.capability = capability
        self.config = config
        self.signer = self._make_signer()

    @property
    def key(self) -> str:
        return self.capability.key

    @abstractmethod
    def _make_signer(self) -> Signer:
        raise NotImplementedError

    def endpoint(self, credentials: ResolvedCredentials) -> ResolvedEndpoint:
        return resolve_endpoint(
            self.key,
            credentials.market_type,
            credentials.test_mode,
            self.config,
        )

    def build_payload(self, intent: OrderIntent, credentials: ResolvedCredentials) -> dict[str, Any]:
        return build_order_payload(
            self.key, intent, credentials, self.config.client_order_prefix
        )

    def build_cancel(
        self, symbol: str, order_id: str, credentials: ResolvedCredentials
    ) -> dict[str, Any]:
        return build_cancel_payload(self.key, symbol, order_id, credentials)

    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        return self.signer.sign(credentials, request, timestamp_ms)

    def normalize(self, body: ResponseBody, intent: OrderIntent) -> ExchangeOrderResponse:
        return normalize_response(self.capability.name, body, intent)


class QueryStringAdapter(ExchangeAdapter):
    family = "query_hmac"

    API_KEY_HEADERS = {
        "binance": "X-MBX-APIKEY",
        "binance eu": "X-MBX-APIKEY",
        "mexc": "X-MEXC-APIKEY",
        "bingx": "X-BX-APIKEY",
    }

    def _make_signer(self) -> Signer:
        return QueryStringHmacSigner(
            api_key_header=self.API_KEY_HEADERS[self.capability.key],
            recv_window=self.config.recv_window,
        )


class BybitAdapter(ExchangeAdapter):
    family = "header_hmac"

    def _make_signer(self) -> Signer:
        return HeaderHmacSigner(recv_window=self.config.recv_window)


class KrakenAdapter(ExchangeAdapter):
    family = "nonce_path_hmac"

    def _make_signer(self) -> Signer:
        return NoncePathHmacSigner()


class HeaderAuthAdapter(ExchangeAdapter):
    family = "header_auth"

    def _make_signer(self) -> Signer:
        return GenericHeaderSigner()


ADAPTER_FAMILIES: dict[str, type[ExchangeAdapter]] = {
    "binance": QueryStringAdapter,
    "binance eu": QueryStringAdapter,
    "mexc": QueryStringAdapter,
    "bingx": QueryStringAdapter,
    "bybit": BybitAdapter,
    "kraken": KrakenAdapter,
    "kraken eu": KrakenAdapter,
    "coinbase": HeaderAuthAdapter,
    "coinbase pro": HeaderAuthAdapter,
    "kucoin": HeaderAuthAdapter,
    "coinex": HeaderAuthAdapter,
}


def get_adapter(exchange: str, config: ExecutionConfig | None = None) -> ExchangeAdapter:
    capability = capability_of(exchange)
    adapter_cls = ADAPTER_FAMILIES.get(capability.key)
    if not capability.known or adapter_cls is None:
        raise UnsupportedExchangeError(exchange)
    return adapter_cls(capability, config or ExecutionConfig())
