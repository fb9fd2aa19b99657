"""Exchange adapters: capabilities, payloads, signing and response normalization."""

from src.exchanges.adapters import ExchangeAdapter, get_adapter
from src.exchanges.capabilities import (
    ExchangeCapability,
    base_exchange_name,
    capability_of,
    is_futures_exchange,
    supported_exchange_options,
)
from src.exchanges.endpoints import ResolvedEndpoint, resolve_endpoint
from src.exchanges.payloads import build_cancel_payload, build_order_payload
from src.exchanges.responses import (
    ParsedFields,
    RawUnparsed,
    decode_body,
    normalize_response,
)
from src.exchanges.signing import SignedRequest, UnsignedRequest

__all__ = [
    "ExchangeAdapter",
    "ExchangeCapability",
    "ParsedFields",
    "RawUnparsed",
    "ResolvedEndpoint",
    "SignedRequest",
    "UnsignedRequest",
    "base_exchange_name",
    "build_cancel_payload",
    "build_order_payload",
    "capability_of",
    "decode_body",
    "get_adapter",
    "is_futures_exchange",
    "normalize_response",
    "resolve_endpoint",
    "supported_exchange_options",
]
