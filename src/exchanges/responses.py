"""Normalize exchange order responses into ExchangeOrderResponse."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

import orjson

from src.exchanges.capabilities import capability_key
from src.models import ExchangeOrderResponse, OrderIntent, OrderStatus


@dataclass(frozen=True)
class ParsedFields:
    """A response body that decoded to a JSON object."""

    data: dict[str, Any]
    raw: str


@dataclass(frozen=True)
class RawUnparsed:
    """A response body that could not be read as a JSON object."""

    raw: bytes
    reason: str

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", errors="replace")


ResponseBody = Union[ParsedFields, RawUnparsed]


def decode_body(raw: bytes | str) -> ResponseBody:
    raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else raw
    try:
        data = orjson.loads(raw_bytes)
    except orjson.JSONDecodeError as exc:
        return RawUnparsed(raw=raw_bytes, reason=f"invalid JSON: {exc}")
    if not isinstance(data, dict):
        return RawUnparsed(raw=raw_bytes, reason=f"expected object, got {type(data).__name__}")
    return ParsedFields(data=data, raw=raw_bytes.decode("utf-8", errors="replace"))


def _float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _ratio(numerator: Any, denominator: Any) -> float:
    den = _float(denominator)
    return _float(numerator) / den if den > 0 else 0.0


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def extract_error_message(data: dict[str, Any]) -> str | None:
    """Pick the human-readable error out of an exchange error body."""
    for key in ("msg", "message", "retMsg", "ret_msg"):
        value = data.get(key)
        if isinstance(value, str) and value and value.upper() != "OK":
            return value
    error = data.get("error")
    if isinstance(error, list) and error:
        return ", ".join(str(item) for item in error)
    if isinstance(error, str) and error:
        return error
    return None


def business_error(exchange: str, data: dict[str, Any]) -> str | None:
    """Return the error carried by an HTTP-200 body, if the exchange signalled one."""
    key = capability_key(exchange)
    if key == "bybit":
        if data.get("retCode", 0) != 0:
            return extract_error_message(data) or f"retCode {data.get('retCode')}"
        return None
    if key == "kucoin":
        if _text(data.get("code", "200000")) != "200000":
            return extract_error_message(data) or f"code {data.get('code')}"
        return None
    if key in ("bingx", "coinex"):
        if _text(data.get("code", 0)) != "0":
            return extract_error_message(data) or f"code {data.get('code')}"
        return None
    if key in ("kraken", "kraken eu"):
        errors = data.get("error")
        if isinstance(errors, list) and errors:
            return ", ".join(str(item) for item in errors)
        return None
    code = data.get("code")
    if isinstance(code, int) and code < 0:
        return extract_error_message(data) or f"code {code}"
    return None


@dataclass(frozen=True)
class _Fields:
    order_id: str
    status: OrderStatus
    executed_quantity: float = 0.0
    executed_price: float = 0.0
    client_order_id: str | None = None
    error: str | None = None


def _acknowledged(intent: OrderIntent, order_id: str, client_id: str | None = None) -> _Fields:
    # Create endpoints that only echo an id: market orders fill, limit orders rest.
    if intent.order_kind == "market":
        return _Fields(order_id, "filled", intent.quantity, intent.price or 0.0, client_id)
    return _Fields(order_id, "partial", 0.0, 0.0, client_id)


def _rejected(error: str, order_id: str = "") -> _Fields:
    return _Fields(order_id or "rejected", "rejected", error=error)


BINANCE_STATUS: dict[str, OrderStatus] = {
    "FILLED": "filled",
    "PARTIALLY_FILLED": "partial",
    "NEW": "partial",
    "CANCELED": "cancelled",
    "PENDING_CANCEL": "cancelled",
    "EXPIRED": "cancelled",
    "EXPIRED_IN_MATCH": "cancelled",
    "REJECTED": "rejected",
}

KRAKEN_STATUS: dict[str, OrderStatus] = {
    "closed": "filled",
    "open": "partial",
    "pending": "partial",
    "canceled": "cancelled",
    "expired": "cancelled",
}

COINBASE_STATUS: dict[str, OrderStatus] = {
    "done": "filled",
    "open": "partial",
    "pending": "partial",
    "active": "partial",
    "canceled": "cancelled",
}

COINEX_STATUS: dict[str, OrderStatus] = {
    "filled": "filled",
    "part_filled": "partial",
    "open": "partial",
    "canceled": "cancelled",
    "part_canceled": "cancelled",
}


def _binance_like(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    order_id = _text(data.get("orderId") or data.get("clientOrderId"))
    client_id = data.get("clientOrderId")
    status_raw = data.get("status")
    if status_raw is None:
        return _acknowledged(intent, order_id, client_id) if order_id else _rejected("missing status")
    executed = _float(data.get("executedQty"))
    if _text(status_raw).upper() == "NEW" and executed <= 0 and intent.order_kind == "market":
        # ACK-style answer to a market order: accepted, fill not yet reported.
        return _acknowledged(intent, order_id, client_id) if order_id else _rejected("missing orderId")
    price = _float(data.get("avgPrice")) or _ratio(data.get("cummulativeQuoteQty"), executed)
    return _Fields(
        order_id=order_id or "unknown",
        status=BINANCE_STATUS.get(_text(status_raw).upper(), "rejected"),
        executed_quantity=executed,
        executed_price=price,
        client_order_id=client_id,
    )


def _normalize_binance(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    return _binance_like(data, intent)


def _normalize_bybit(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    result = data.get("result") or {}
    order_id = _text(result.get("orderId")) if isinstance(result, dict) else ""
    if not order_id:
        return _rejected("missing orderId")
    return _acknowledged(intent, order_id, result.get("orderLinkId"))


def _normalize_kraken(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    result = data.get("result") or {}
    if not isinstance(result, dict):
        return _rejected("missing result")
    txid = result.get("txid")
    order_id = _text(txid[0]) if isinstance(txid, list) and txid else ""
    if not order_id:
        descr = result.get("descr") or {}
        order_id = _text(descr.get("order")) if isinstance(descr, dict) else ""
    if not order_id:
        return _rejected("missing txid")
    status_raw = result.get("status")
    if status_raw is None:
        return _acknowledged(intent, order_id)
    executed = _float(result.get("vol_exec"))
    return _Fields(
        order_id=order_id,
        status=KRAKEN_STATUS.get(_text(status_raw).lower(), "rejected"),
        executed_quantity=executed,
        executed_price=_ratio(result.get("cost"), executed),
    )


def _normalize_coinbase(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    order_id = _text(data.get("id"))
    if not order_id:
        return _rejected(extract_error_message(data) or "missing id")
    executed = _float(data.get("filled_size"))
    return _Fields(
        order_id=order_id,
        status=COINBASE_STATUS.get(_text(data.get("status")).lower(), "rejected"),
        executed_quantity=executed,
        executed_price=_ratio(data.get("executed_value"), executed),
        client_order_id=data.get("client_oid"),
    )


def _normalize_kucoin(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    payload = data.get("data") or {}
    order_id = _text(payload.get("orderId")) if isinstance(payload, dict) else ""
    if not order_id:
        return _rejected("missing orderId")
    return _acknowledged(intent, order_id, payload.get("clientOid"))


def _normalize_bingx(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    payload = data.get("data") or {}
    if isinstance(payload, dict) and isinstance(payload.get("order"), dict):
        payload = payload["order"]
    if not isinstance(payload, dict):
        return _rejected("missing data")
    return _binance_like(payload, intent)


def _normalize_coinex(data: dict[str, Any], intent: OrderIntent) -> _Fields:
    payload = data.get("data") or {}
    order_id = _text(payload.get("order_id")) if isinstance(payload, dict) else ""
    if not order_id:
        return _rejected("missing order_id")
    status_raw = payload.get("status")
    if status_raw is None:
        return _acknowledged(intent, order_id, payload.get("client_id"))
    executed = _float(payload.get("filled_amount"))
    return _Fields(
        order_id=order_id,
        status=COINEX_STATUS.get(_text(status_raw).lower(), "rejected"),
        executed_quantity=executed,
        executed_price=_ratio(payload.get("filled_value"), executed),
        client_order_id=payload.get("client_id"),
    )


NORMALIZERS: dict[str, Callable[[dict[str, Any], OrderIntent], _Fields]] = {
    "binance": _normalize_binance,
    "binance eu": _normalize_binance,
    "mexc": _normalize_binance,
    "bybit": _normalize_bybit,
    "kraken": _normalize_kraken,
    "kraken eu": _normalize_kraken,
    "coinbase": _normalize_coinbase,
    "coinbase pro": _normalize_coinbase,
    "kucoin": _normalize_kucoin,
    "bingx": _normalize_bingx,
    "coinex": _normalize_coinex,
}


def normalize_response(
    exchange: str,
    body: ResponseBody,
    intent: OrderIntent,
) -> ExchangeOrderResponse:
    """Map any response body to the canonical result; never raises on odd fields."""
    requested_price = intent.price or 0.0
    if isinstance(body, RawUnparsed):
        fields = _rejected(f"Unparseable response: {body.reason}")
        raw_text = body.text
    else:
        raw_text = body.raw
        error = business_error(exchange, body.data)
        normalizer = NORMALIZERS.get(capability_key(exchange))
        if error:
            fields = _rejected(error)
        elif normalizer is None:
            fields = _rejected(f"No response normalizer for {exchange}")
        else:
            fields = normalizer(body.data, intent)

    return ExchangeOrderResponse(
        order_id=fields.order_id,
        symbol=intent.symbol,
        side=intent.side,
        quantity=intent.quantity,
        price=requested_price,
        status=fields.status,
        executed_quantity=fields.executed_quantity,
        executed_price=fields.executed_price if fields.executed_price > 0 else requested_price,
        exchange=exchange,
        client_order_id=fields.client_order_id or intent.client_order_id,
        error=fields.error,
        raw_response=raw_text,
    )
