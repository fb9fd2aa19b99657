"""Translate a canonical OrderIntent into each exchange's wire payload.

Everything here is pure: no I/O, no clock reads beyond client-order-id
generation when the caller did not supply one.
"""

from __future__ import annotations

import time
import zlib
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, Callable
from uuid import NAMESPACE_OID, uuid5

from src.errors import InvalidAlertError, UnsupportedExchangeError
from src.exchanges.capabilities import capability_key
from src.models import OrderIntent, ResolvedCredentials

PRICE_DECIMALS = 8
QUOTE_CURRENCIES = ("USDT", "USDC", "BUSD", "FDUSD", "USD", "EUR", "BTC", "ETH")
# Exchange variants whose pairs are quoted in USDC instead of USDT.
USDC_QUOTED_EXCHANGES = {"binance eu", "kraken eu"}
# USD-M futures answers ACK (status NEW, nothing executed) unless RESULT is requested.
BINANCE_RESULT_EXCHANGES = {"binance", "binance eu"}

PayloadBuilder = Callable[[OrderIntent, ResolvedCredentials, str], dict[str, Any]]
CancelBuilder = Callable[[str, str, ResolvedCredentials], dict[str, Any]]


def format_decimal(value: float, places: int = PRICE_DECIMALS) -> str:
    """Render a float as a plain decimal string with at most `places` decimals."""
    try:
        quant = Decimal(1).scaleb(-places)
        rounded = Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_EVEN)
    except InvalidOperation as exc:
        raise InvalidAlertError(f"Cannot format numeric value: {value!r}") from exc
    text = format(rounded.normalize(), "f")
    return "0" if text in ("-0", "") else text


def new_client_order_id(prefix: str, suffix: str | None = None, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    client_id = f"{prefix}_{stamp}"
    if suffix:
        client_id = f"{client_id}_{suffix}"
    return client_id[:36]


def normalize_symbol(symbol: str) -> str:
    cleaned = symbol.strip().upper()
    if cleaned.endswith(".P"):
        cleaned = cleaned[:-2]
    for separator in ("/", "-", "_", ":"):
        cleaned = cleaned.replace(separator, "")
    return cleaned


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split "BTCUSDT" into ("BTC", "USDT"); unknown quotes yield (symbol, "")."""
    normalized = normalize_symbol(symbol)
    for quote in sorted(QUOTE_CURRENCIES, key=len, reverse=True):
        if normalized.endswith(quote) and len(normalized) > len(quote):
            return normalized[: -len(quote)], quote
    return normalized, ""


def exchange_symbol(exchange_key: str, symbol: str, market_type: str = "spot") -> str:
    """Rewrite an alert symbol into the exchange's pair notation."""
    base, quote = split_symbol(symbol)
    if exchange_key in USDC_QUOTED_EXCHANGES and quote == "USDT":
        quote = "USDC"
    if exchange_key in ("kraken", "kraken eu"):
        return f"{'XBT' if base == 'BTC' else base}{quote}"
    if exchange_key in ("coinbase", "coinbase pro"):
        return f"{base}-{quote}" if quote else base
    if exchange_key == "kucoin":
        if market_type == "futures":
            return f"{'XBT' if base == 'BTC' else base}{quote}M"
        return f"{base}-{quote}" if quote else base
    if exchange_key == "bingx":
        return f"{base}-{quote}" if quote else base
    return f"{base}{quote}"


def _limit_fields(intent: OrderIntent, price_key: str) -> dict[str, Any]:
    if intent.order_kind != "limit":
        return {}
    if intent.price is None or intent.price <= 0:
        raise InvalidAlertError(f"Limit order for {intent.symbol} requires a positive price")
    return {price_key: format_decimal(intent.price)}


def _build_binance(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "symbol": exchange_symbol(creds.exchange_key, intent.symbol, creds.market_type),
        "side": intent.side,
        "type": intent.order_kind.upper(),
        "quantity": format_decimal(intent.quantity),
        "newClientOrderId": client_id,
    }
    if creds.exchange_key in BINANCE_RESULT_EXCHANGES:
        payload["newOrderRespType"] = "RESULT"
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["timeInForce"] = "GTC"
    return payload


def _build_bybit(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "category": "linear" if creds.market_type == "futures" else "spot",
        "symbol": exchange_symbol(creds.exchange_key, intent.symbol, creds.market_type),
        "side": intent.side.capitalize(),
        "orderType": intent.order_kind.capitalize(),
        "qty": format_decimal(intent.quantity),
        "orderLinkId": client_id,
    }
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["timeInForce"] = "GTC"
    return payload


def _build_kraken(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "pair": exchange_symbol(creds.exchange_key, intent.symbol),
        "type": intent.side.lower(),
        "ordertype": intent.order_kind,
        "volume": format_decimal(intent.quantity),
        # userref is a signed 32-bit integer
        "userref": zlib.crc32(client_id.encode("utf-8")) & 0x7FFFFFFF,
    }
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["timeinforce"] = "GTC"
    return payload


def _build_coinbase(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "product_id": exchange_symbol(creds.exchange_key, intent.symbol),
        "side": intent.side.lower(),
        "type": intent.order_kind,
        "size": format_decimal(intent.quantity),
        # Coinbase requires a UUID client id
        "client_oid": str(uuid5(NAMESPACE_OID, client_id)),
    }
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["time_in_force"] = "GTC"
    return payload


def _build_kucoin(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "clientOid": client_id,
        "symbol": exchange_symbol(creds.exchange_key, intent.symbol, creds.market_type),
        "side": intent.side.lower(),
        "type": intent.order_kind,
        "size": format_decimal(intent.quantity),
    }
    if creds.market_type == "futures":
        payload["leverage"] = creds.leverage or 1
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["timeInForce"] = "GTC"
    return payload


def _build_bingx(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "symbol": exchange_symbol(creds.exchange_key, intent.symbol, creds.market_type),
        "side": intent.side,
        "type": intent.order_kind.upper(),
        "quantity": format_decimal(intent.quantity),
        "newClientOrderId": client_id,
    }
    if creds.market_type == "futures":
        payload["positionSide"] = "BOTH"
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
        payload["timeInForce"] = "GTC"
    return payload


def _build_coinex(intent: OrderIntent, creds: ResolvedCredentials, client_id: str) -> dict[str, Any]:
    # CoinEx v2 has no time-in-force field; limit orders rest until cancelled.
    payload: dict[str, Any] = {
        "market": exchange_symbol(creds.exchange_key, intent.symbol, creds.market_type),
        "market_type": "FUTURES" if creds.market_type == "futures" else "SPOT",
        "side": intent.side.lower(),
        "type": intent.order_kind,
        "amount": format_decimal(intent.quantity),
        "client_id": client_id,
    }
    if intent.order_kind == "limit":
        payload.update(_limit_fields(intent, "price"))
    return payload


def _cancel_by_symbol(order_key: str) -> CancelBuilder:
    def build(symbol: str, order_id: str, creds: ResolvedCredentials) -> dict[str, Any]:
        return {
            "symbol": exchange_symbol(creds.exchange_key, symbol, creds.market_type),
            order_key: order_id,
        }

    return build


def _cancel_bybit(symbol: str, order_id: str, creds: ResolvedCredentials) -> dict[str, Any]:
    return {
        "category": "linear" if creds.market_type == "futures" else "spot",
        "symbol": exchange_symbol(creds.exchange_key, symbol, creds.market_type),
        "orderId": order_id,
    }


def _cancel_kraken(symbol: str, order_id: str, creds: ResolvedCredentials) -> dict[str, Any]:
    return {"txid": order_id}


def _cancel_in_path(symbol: str, order_id: str, creds: ResolvedCredentials) -> dict[str, Any]:
    return {}


def _cancel_coinex(symbol: str, order_id: str, creds: ResolvedCredentials) -> dict[str, Any]:
    return {
        "market": exchange_symbol(creds.exchange_key, symbol, creds.market_type),
        "market_type": "FUTURES" if creds.market_type == "futures" else "SPOT",
        "order_id": order_id,
    }


PAYLOAD_BUILDERS: dict[str, PayloadBuilder] = {
    "binance": _build_binance,
    "binance eu": _build_binance,
    "mexc": _build_binance,
    "bybit": _build_bybit,
    "kraken": _build_kraken,
    "kraken eu": _build_kraken,
    "coinbase": _build_coinbase,
    "coinbase pro": _build_coinbase,
    "kucoin": _build_kucoin,
    "bingx": _build_bingx,
    "coinex": _build_coinex,
}

CANCEL_BUILDERS: dict[str, CancelBuilder] = {
    "binance": _cancel_by_symbol("orderId"),
    "binance eu": _cancel_by_symbol("orderId"),
    "mexc": _cancel_by_symbol("orderId"),
    "bingx": _cancel_by_symbol("orderId"),
    "bybit": _cancel_bybit,
    "kraken": _cancel_kraken,
    "kraken eu": _cancel_kraken,
    "coinbase": _cancel_in_path,
    "coinbase pro": _cancel_in_path,
    "kucoin": _cancel_in_path,
    "coinex": _cancel_coinex,
}


def build_order_payload(
    exchange: str,
    intent: OrderIntent,
    credentials: ResolvedCredentials,
    client_order_prefix: str = "cointel",
) -> dict[str, Any]:
    key = capability_key(exchange)
    builder = PAYLOAD_BUILDERS.get(key)
    if builder is None:
        raise UnsupportedExchangeError(exchange)
    if intent.quantity <= 0:
        raise InvalidAlertError(f"Order quantity must be positive, got {intent.quantity}")
    client_id = intent.client_order_id or new_client_order_id(client_order_prefix)
    return builder(intent, credentials, client_id)


def build_cancel_payload(
    exchange: str,
    symbol: str,
    order_id: str,
    credentials: ResolvedCredentials,
) -> dict[str, Any]:
    key = capability_key(exchange)
    builder = CANCEL_BUILDERS.get(key)
    if builder is None:
        raise UnsupportedExchangeError(exchange)
    return builder(symbol, order_id, credentials)
