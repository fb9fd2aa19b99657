"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from src.errors import ConfigurationError


Side = Literal["BUY", "SELL"]
AlertStatus = Literal["pending", "executed", "ignored", "failed"]
OrderStatus = Literal["filled", "partial", "cancelled", "rejected"]
LegStatus = Literal["pending", "filled", "cancelled", "rejected"]
OrderKind = Literal["market", "limit"]
MarketType = Literal["spot", "futures"]
TradingMode = Literal["AUTO", "MANUAL"]
SizingType = Literal["percentage", "fixed"]
CloseReason = Literal["take_profit", "stop_loss"]


class StrategyType(str, Enum):
    """The two execution styles an alert can map to."""

    INTRADAY = "intraday"
    MULTIENTRY = "multientry"


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def opposite_side(side: Side) -> Side:
    return "SELL" if side == "BUY" else "BUY"


@dataclass
class TradeAlert:
    id: str
    symbol: str
    side: Side
    quantity: float
    price: float
    strategy: str
    timestamp: datetime = field(default_factory=utc_now)
    alert: str | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    status: AlertStatus = "pending"
    executed_price: float | None = None
    executed_at: datetime | None = None
    error: str | None = None
    raw_response: str | None = None
    # Informational metadata from the signal source; execution uses the active credential.
    exchange: str | None = None
    pair: str | None = None
    time_frame: str | None = None
    alias: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["timestamp"] = _format_ts(self.timestamp)
        data["executed_at"] = _format_ts(self.executed_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TradeAlert:
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["timestamp"] = _parse_ts(values.get("timestamp")) or utc_now()
        values["executed_at"] = _parse_ts(values.get("executed_at"))
        return cls(**values)


@dataclass
class ExchangeCredentials:
    id: str
    exchange: str
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    passphrase: str | None = field(default=None, repr=False)
    test_api_key: str | None = field(default=None, repr=False)
    test_api_secret: str | None = field(default=None, repr=False)
    test_passphrase: str | None = field(default=None, repr=False)
    market_type: MarketType | None = None
    leverage: int | None = None
    is_active: bool = False
    created_at: datetime = field(default_factory=utc_now)

    @property
    def has_test_keys(self) -> bool:
        return bool(self.test_api_key and self.test_api_secret)

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["created_at"] = _format_ts(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExchangeCredentials:
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["created_at"] = _parse_ts(values.get("created_at")) or utc_now()
        return cls(**values)


@dataclass(frozen=True)
class ResolvedCredentials:
    """The single credential set used for one call, test keys already substituted."""

    credential_id: str
    exchange: str
    exchange_key: str
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    passphrase: str | None = field(default=None, repr=False)
    market_type: MarketType = "spot"
    leverage: int | None = None
    test_mode: bool = False


@dataclass
class TradingConfig:
    mode: TradingMode = "MANUAL"
    order_size_type: SizingType = "percentage"
    order_size_value: float = 100.0
    max_position_size: float = 1000.0
    stop_loss_percentage: float = 5.3
    take_profit_percentage: float = 77.0
    test_mode: bool = False
    enabled_strategies: list[str] = field(
        default_factory=lambda: [StrategyType.INTRADAY.value]
    )
    multientry_base_amount: float = 100.0

    def __post_init__(self) -> None:
        # Order-preserving dedupe.
        self.enabled_strategies = list(
            dict.fromkeys(StrategyType(s).value for s in self.enabled_strategies)
        )
        if not self.enabled_strategies:
            raise ConfigurationError("At least one strategy must remain enabled")

    def is_enabled(self, strategy_type: StrategyType) -> bool:
        return strategy_type.value in self.enabled_strategies

    def toggle_strategy(self, strategy_type: StrategyType | str) -> None:
        """Flip a strategy on or off; disabling the last enabled one is refused."""
        value = StrategyType(strategy_type).value
        if value in self.enabled_strategies:
            if len(self.enabled_strategies) == 1:
                raise ConfigurationError("At least one strategy must remain enabled")
            self.enabled_strategies.remove(value)
        else:
            self.enabled_strategies.append(value)

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["enabled_strategies"] = list(self.enabled_strategies)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TradingConfig:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class ParsedAlert:
    alert: TradeAlert
    strategy_type: StrategyType
    calculated_quantity: float
    calculated_price: float
    order_value: float
    credentials: ResolvedCredentials
    test_mode: bool = False

    @property
    def symbol(self) -> str:
        return self.alert.symbol

    @property
    def side(self) -> Side:
        return self.alert.side

    @property
    def exchange(self) -> str:
        return self.credentials.exchange


@dataclass(frozen=True)
class OrderIntent:
    symbol: str
    side: Side
    order_kind: OrderKind
    quantity: float
    price: float | None
    client_order_id: str | None = None


@dataclass(frozen=True)
class ExchangeOrderResponse:
    order_id: str
    symbol: str
    side: Side
    quantity: float
    price: float
    status: OrderStatus
    executed_quantity: float
    executed_price: float
    exchange: str
    timestamp: datetime = field(default_factory=utc_now)
    client_order_id: str | None = None
    error: str | None = None
    raw_response: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status in ("filled", "partial")


@dataclass(frozen=True)
class MultientryLevel:
    level: int
    price: float
    quantity: float
    order_kind: OrderKind

    @property
    def name(self) -> str:
        return f"L{self.level}"


@dataclass(frozen=True)
class MultientryPlan:
    correlation_id: str
    levels: tuple[MultientryLevel, ...]


@dataclass(frozen=True)
class CloseSignal:
    reason: CloseReason
    correlation_id: str


@dataclass
class LegRecord:
    level: int
    quantity: float
    price: float
    order_kind: OrderKind
    status: LegStatus = "pending"
    order_id: str | None = None
    client_order_id: str | None = None
    filled_quantity: float = 0.0
    filled_price: float | None = None
    error: str | None = None
    closed_order_id: str | None = None
    # Set while part of a partially filled limit order still rests on the book.
    remainder_open: bool = False
    raw_response: str | None = None
    close_raw_response: str | None = None

    @property
    def name(self) -> str:
        return f"L{self.level}"

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LegRecord:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class MultientryOrder:
    correlation_id: str
    alert_id: str
    symbol: str
    exchange: str
    side: Side
    created_at: datetime = field(default_factory=utc_now)
    legs: list[LegRecord] = field(default_factory=list)

    def leg(self, level: int) -> LegRecord | None:
        for leg in self.legs:
            if leg.level == level:
                return leg
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "alert_id": self.alert_id,
            "symbol": self.symbol,
            "exchange": self.exchange,
            "side": self.side,
            "created_at": _format_ts(self.created_at),
            "legs": [leg.to_dict() for leg in self.legs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MultientryOrder:
        return cls(
            correlation_id=data["correlation_id"],
            alert_id=data.get("alert_id", ""),
            symbol=data["symbol"],
            exchange=data.get("exchange", ""),
            side=data["side"],
            created_at=_parse_ts(data.get("created_at")) or utc_now(),
            legs=[LegRecord.from_dict(leg) for leg in data.get("legs", [])],
        )


@dataclass(frozen=True)
class CloseResult:
    correlation_id: str
    reason: CloseReason
    closed: int
    cancelled: int
    errors: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.errors
