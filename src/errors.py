"""Exception hierarchy for alert execution."""

from __future__ import annotations


class TradingError(Exception):
    """Base class for every error raised by the execution core."""


class ConfigurationError(TradingError):
    """Fatal configuration problem; surfaced immediately and never retried."""


class NoActiveExchangeError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No exchange configured: no active exchange credentials found")


class UnknownStrategyError(ConfigurationError):
    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        super().__init__(f"Unknown strategy: {strategy}")


class StrategyDisabledError(ConfigurationError):
    def __init__(self, strategy: str, strategy_type: str) -> None:
        self.strategy = strategy
        self.strategy_type = strategy_type
        super().__init__(f"Strategy disabled: {strategy} ({strategy_type})")


class UnsupportedExchangeError(ConfigurationError):
    def __init__(self, exchange: str, detail: str | None = None) -> None:
        self.exchange = exchange
        message = f"Unsupported exchange: {exchange}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ParseError(TradingError):
    """Malformed alert payload; fatal for that alert only."""


class InvalidAlertError(ParseError):
    pass


class SigningError(TradingError):
    """Credential or signature construction failed."""


class NetworkError(TradingError):
    """Transport-level failure talking to the exchange."""


class RequestTimeoutError(NetworkError):
    def __init__(self, timeout_sec: float) -> None:
        self.timeout_sec = timeout_sec
        super().__init__(
            f"Request timeout: Exchange did not respond within {timeout_sec:g} seconds"
        )


class ExchangeAPIError(TradingError):
    """Exchange answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        raw_response: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.raw_response = raw_response
        super().__init__(f"Exchange API error: {message}")


class PositionNotFoundError(TradingError):
    def __init__(self, correlation_id: str) -> None:
        self.correlation_id = correlation_id
        super().__init__(f"No multientry order found for ID: {correlation_id}")
