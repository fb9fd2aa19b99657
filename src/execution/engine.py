"""Order execution engine: sign, send and normalize one exchange request."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable

import httpx
import structlog

from src.config.settings import ExecutionConfig, Settings
from src.errors import ExchangeAPIError, NetworkError, RequestTimeoutError, TradingError
from src.exchanges.adapters import ExchangeAdapter, get_adapter
from src.exchanges.payloads import new_client_order_id
from src.exchanges.responses import (
    ParsedFields,
    business_error,
    decode_body,
    extract_error_message,
)
from src.exchanges.signing import SignedRequest, UnsignedRequest, sanitize_headers, sanitize_url
from src.models import ExchangeOrderResponse, OrderIntent, ParsedAlert, ResolvedCredentials

if TYPE_CHECKING:
    from src.monitoring.metrics import Metrics
    from src.monitoring.order_log import OrderLogger


def _now_ms() -> int:
    return int(time.time() * 1000)


class ExecutionEngine:
    """Submit orders to the active exchange; one POST per call, never retried."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        metrics: Metrics | None = None,
        order_logger: OrderLogger | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.settings = settings
        self.config: ExecutionConfig = settings.execution
        self.http = client or httpx.AsyncClient(timeout=self.config.request_timeout_sec)
        self._owns_client = client is None
        self._metrics = metrics
        self._order_logger = order_logger
        self.clock = clock or _now_ms
        self.log = structlog.get_logger(__name__)

    async def close(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    def adapter_for(self, credentials: ResolvedCredentials) -> ExchangeAdapter:
        return get_adapter(credentials.exchange, self.config)

    def client_order_id(self, suffix: str | None = None) -> str:
        return new_client_order_id(self.config.client_order_prefix, suffix, self.clock())

    def build_payload(self, parsed: ParsedAlert, intent: OrderIntent) -> dict[str, Any]:
        return self.adapter_for(parsed.credentials).build_payload(intent, parsed.credentials)

    async def submit(self, parsed: ParsedAlert, intent: OrderIntent) -> ExchangeOrderResponse:
        """Build the exchange payload for `intent` and execute it."""
        return await self.execute(parsed, intent, self.build_payload(parsed, intent))

    async def execute(
        self,
        parsed: ParsedAlert,
        intent: OrderIntent,
        payload: dict[str, Any],
    ) -> ExchangeOrderResponse:
        credentials = parsed.credentials
        try:
            adapter = self.adapter_for(credentials)
            endpoint = adapter.endpoint(credentials)
            signed = adapter.sign(
                credentials,
                UnsignedRequest("POST", endpoint.base_url, endpoint.order_path, payload),
                self.clock(),
            )
            response = await self._send(signed, credentials.exchange, "order")
            result = adapter.normalize(decode_body(response.content), intent)
        except TradingError as exc:
            self._record_failure(parsed, intent, exc)
            raise

        self.log.info(
            "order_submitted",
            alert_id=parsed.alert.id,
            exchange=credentials.exchange,
            symbol=intent.symbol,
            side=intent.side,
            order_kind=intent.order_kind,
            quantity=intent.quantity,
            order_id=result.order_id,
            client_order_id=result.client_order_id,
            status=result.status,
            executed_quantity=result.executed_quantity,
            test_endpoint=endpoint.is_test,
        )
        if result.status == "rejected":
            self.log.warning(
                "order_rejected",
                exchange=credentials.exchange,
                symbol=intent.symbol,
                error=result.error,
            )
        if self._metrics:
            self._metrics.orders_submitted_total.labels(
                exchange=credentials.exchange, status=result.status
            ).inc()
        if self._order_logger:
            self._order_logger.log_order(result, intent.order_kind, parsed.alert.id)
        return result

    async def cancel(self, parsed: ParsedAlert, symbol: str, order_id: str) -> None:
        """Cancel a resting order; raises on transport, HTTP or exchange-reported failure."""
        credentials = parsed.credentials
        adapter = self.adapter_for(credentials)
        try:
            endpoint = adapter.endpoint(credentials)
            payload = adapter.build_cancel(symbol, order_id, credentials)
            path = endpoint.cancel_path.format(order_id=order_id)
            signed = adapter.sign(
                credentials,
                UnsignedRequest(endpoint.cancel_method, endpoint.base_url, path, payload),
                self.clock(),
            )
            response = await self._send(signed, credentials.exchange, "cancel")
            body = decode_body(response.content)
            if isinstance(body, ParsedFields):
                error = business_error(adapter.capability.name, body.data)
                if error:
                    raise ExchangeAPIError(error, response.status_code, body.raw)
        except TradingError as exc:
            self.log.warning(
                "cancel_order_failed",
                exchange=credentials.exchange,
                symbol=symbol,
                order_id=order_id,
                error=str(exc),
            )
            if self._metrics:
                self._metrics.cancels_total.labels(
                    exchange=credentials.exchange, outcome="failed"
                ).inc()
            if self._order_logger:
                self._order_logger.log_failure(
                    credentials.exchange,
                    symbol,
                    "",
                    str(exc),
                    alert_id=parsed.alert.id,
                    context="cancel_error",
                    order_id=order_id,
                )
            raise

        self.log.info(
            "order_cancelled",
            exchange=credentials.exchange,
            symbol=symbol,
            order_id=order_id,
        )
        if self._metrics:
            self._metrics.cancels_total.labels(exchange=credentials.exchange, outcome="ok").inc()

    async def _send(self, signed: SignedRequest, exchange: str, action: str) -> httpx.Response:
        monitoring = self.settings.monitoring
        max_body_chars = monitoring.log_http_max_body_chars
        timeout = self.config.request_timeout_sec
        if monitoring.log_http:
            self.log.info(
                "order_request",
                action=action,
                exchange=exchange,
                method=signed.method,
                url=sanitize_url(signed.url),
                headers=sanitize_headers(signed.headers),
            )

        start = time.perf_counter()
        try:
            response = await self.http.request(
                signed.method,
                signed.url,
                headers=signed.headers,
                content=signed.content,
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            self.log.warning(
                "order_request_timeout",
                action=action,
                exchange=exchange,
                timeout_sec=timeout,
            )
            raise RequestTimeoutError(timeout) from exc
        except httpx.RequestError as exc:
            self.log.warning(
                "order_request_error",
                action=action,
                exchange=exchange,
                error=str(exc),
            )
            raise NetworkError(f"Network error: {exc}") from exc
        latency_ms = (time.perf_counter() - start) * 1000
        if self._metrics:
            self._metrics.order_request_latency_ms.labels(exchange=exchange).observe(latency_ms)

        if monitoring.log_http:
            payload: dict[str, Any] = {
                "action": action,
                "exchange": exchange,
                "status_code": response.status_code,
                "latency_ms": round(latency_ms, 2),
            }
            if monitoring.log_http_responses and max_body_chars > 0:
                payload["response_preview"] = self._truncate(response.text, max_body_chars)
            self.log.info("order_response", **payload)

        if response.status_code >= 400:
            body = decode_body(response.content)
            message = None
            if isinstance(body, ParsedFields):
                message = extract_error_message(body.data)
            if not message:
                message = self._truncate(response.text, max_body_chars) or f"HTTP {response.status_code}"
            self.log.error(
                "order_http_error",
                action=action,
                exchange=exchange,
                status_code=response.status_code,
                latency_ms=round(latency_ms, 2),
                error=message,
            )
            raise ExchangeAPIError(message, response.status_code, response.text)
        return response

    def _record_failure(self, parsed: ParsedAlert, intent: OrderIntent, exc: TradingError) -> None:
        exchange = parsed.credentials.exchange
        self.log.error(
            "order_failed",
            alert_id=parsed.alert.id,
            exchange=exchange,
            symbol=intent.symbol,
            side=intent.side,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if self._metrics:
            self._metrics.order_errors_total.labels(
                exchange=exchange, error=type(exc).__name__
            ).inc()
        if self._order_logger:
            self._order_logger.log_failure(
                exchange,
                intent.symbol,
                intent.side,
                str(exc),
                order_kind=intent.order_kind,
                alert_id=parsed.alert.id,
            )

    @staticmethod
    def _truncate(text: str, max_chars: int) -> str:
        if max_chars <= 0 or len(text) <= max_chars:
            return text
        return text[: max_chars - 3] + "..."
