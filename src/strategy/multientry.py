"""Parse compact multientry and close alert strings.

Entry alerts look like ``L1,100:L2,95:L3,90:L4,85:ID,ABC1``; close alerts look
like ``TP:ID,ABC1`` or ``SL:ID,ABC1``.
"""

from __future__ import annotations

import math

from src.errors import ParseError
from src.models import CloseReason, CloseSignal, MultientryLevel, MultientryPlan

LEVELS = (1, 2, 3, 4)
CLOSE_REASONS: dict[str, CloseReason] = {"TP": "take_profit", "SL": "stop_loss"}


def _tokens(text: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for chunk in text.strip().split(":"):
        chunk = chunk.strip()
        if not chunk:
            continue
        key, _, value = chunk.partition(",")
        pairs.append((key.strip().upper(), value.strip()))
    return pairs


def _parse_price(level: str, raw: str) -> float:
    try:
        price = float(raw)
    except ValueError as exc:
        raise ParseError(f"Invalid price for {level}: {raw!r}") from exc
    if not math.isfinite(price) or price <= 0:
        raise ParseError(f"Price for {level} must be positive, got {raw!r}")
    return price


def parse_multientry_alert(text: str, base_amount: float) -> MultientryPlan:
    """Decode level prices and the correlation id; levels come back sorted L1..L4."""
    if base_amount <= 0:
        raise ParseError(f"Multientry base amount must be positive, got {base_amount}")

    prices: dict[int, float] = {}
    correlation_id = ""
    for key, value in _tokens(text or ""):
        if key == "ID":
            correlation_id = value
            continue
        if len(key) == 2 and key[0] == "L" and key[1].isdigit() and int(key[1]) in LEVELS:
            prices[int(key[1])] = _parse_price(key, value)

    if not correlation_id:
        raise ParseError(f"Multientry alert is missing an ID: {text!r}")
    if not prices:
        raise ParseError(f"Multientry alert has no levels: {text!r}")

    levels = tuple(
        MultientryLevel(
            level=n,
            price=prices[n],
            quantity=base_amount * n / prices[n],
            order_kind="market" if n == 1 else "limit",
        )
        for n in sorted(prices)
    )
    return MultientryPlan(correlation_id=correlation_id, levels=levels)


def is_close_alert(text: str | None) -> bool:
    if not text:
        return False
    head = text.strip().split(":", 1)[0].strip().upper()
    return head in CLOSE_REASONS


def parse_close_alert(text: str) -> CloseSignal:
    tokens = _tokens(text or "")
    if not tokens or tokens[0][0] not in CLOSE_REASONS or tokens[0][1]:
        raise ParseError(f"Close alert must start with TP or SL: {text!r}")
    reason = CLOSE_REASONS[tokens[0][0]]
    correlation_id = ""
    for key, value in tokens[1:]:
        if key == "ID":
            correlation_id = value
    if not correlation_id:
        raise ParseError(f"Close alert is missing an ID: {text!r}")
    return CloseSignal(reason=reason, correlation_id=correlation_id)
