"""Request signing, one strategy per exchange authentication family."""

from __future__ import annotations

import base64
import binascii
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from hashlib import sha256, sha512
from typing import Any
from urllib.parse import urlencode

import orjson

from src.errors import SigningError
from src.models import ResolvedCredentials

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class UnsignedRequest:
    method: str
    base_url: str
    path: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignedRequest:
    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None = None


def hmac_sha256_hex(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), sha256).hexdigest()


def encode_json(payload: dict[str, Any]) -> bytes:
    return orjson.dumps(payload)


class Signer(ABC):
    """Turns an unsigned request into concrete headers, URL and body."""

    @abstractmethod
    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        raise NotImplementedError

    @staticmethod
    def _require_keys(credentials: ResolvedCredentials) -> None:
        if not credentials.api_key:
            raise SigningError(f"API key missing for {credentials.exchange}")
        if not credentials.api_secret:
            raise SigningError(f"API secret missing for {credentials.exchange}")


class QueryStringHmacSigner(Signer):
    """Binance-style: timestamp + recvWindow in the query, hex HMAC-SHA256 appended."""

    def __init__(self, api_key_header: str, recv_window: int = 5000) -> None:
        self.api_key_header = api_key_header
        self.recv_window = recv_window

    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        self._require_keys(credentials)
        params = dict(request.payload)
        params["timestamp"] = timestamp_ms
        params["recvWindow"] = self.recv_window
        query = urlencode(params, doseq=True)
        signature = hmac_sha256_hex(credentials.api_secret, query)
        return SignedRequest(
            method=request.method,
            url=f"{request.base_url}{request.path}?{query}&signature={signature}",
            headers={self.api_key_header: credentials.api_key},
        )


class HeaderHmacSigner(Signer):
    """Bybit V5: HMAC over timestamp + key + recv window + JSON body, sent in headers."""

    def __init__(self, recv_window: int = 5000) -> None:
        self.recv_window = recv_window

    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        self._require_keys(credentials)
        body = encode_json(request.payload)
        recv_window = str(self.recv_window)
        message = f"{timestamp_ms}{credentials.api_key}{recv_window}{body.decode('utf-8')}"
        return SignedRequest(
            method=request.method,
            url=f"{request.base_url}{request.path}",
            headers={
                "Content-Type": JSON_CONTENT_TYPE,
                "X-BAPI-API-KEY": credentials.api_key,
                "X-BAPI-TIMESTAMP": str(timestamp_ms),
                "X-BAPI-RECV-WINDOW": recv_window,
                "X-BAPI-SIGN": hmac_sha256_hex(credentials.api_secret, message),
                "X-BAPI-SIGN-TYPE": "2",
            },
            content=body,
        )


class NoncePathHmacSigner(Signer):
    """Kraken: base64(HMAC-SHA512(path + SHA256(nonce + form body), b64decode(secret)))."""

    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        self._require_keys(credentials)
        try:
            secret = base64.b64decode(credentials.api_secret, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SigningError(f"API secret for {credentials.exchange} is not valid base64") from exc
        nonce = str(timestamp_ms)
        params = {"nonce": nonce, **request.payload}
        body = urlencode(params)
        digest = sha256((nonce + body).encode("utf-8")).digest()
        message = request.path.encode("utf-8") + digest
        signature = base64.b64encode(hmac.new(secret, message, sha512).digest()).decode("ascii")
        return SignedRequest(
            method=request.method,
            url=f"{request.base_url}{request.path}",
            headers={
                "Content-Type": FORM_CONTENT_TYPE,
                "API-Key": credentials.api_key,
                "API-Sign": signature,
            },
            content=body.encode("utf-8"),
        )


class GenericHeaderSigner(Signer):
    """Raw key, secret and optional passphrase passed as headers."""

    def sign(
        self,
        credentials: ResolvedCredentials,
        request: UnsignedRequest,
        timestamp_ms: int,
    ) -> SignedRequest:
        self._require_keys(credentials)
        headers = {
            "Content-Type": JSON_CONTENT_TYPE,
            "X-API-Key": credentials.api_key,
            "X-API-Secret": credentials.api_secret,
        }
        if credentials.passphrase:
            headers["X-Passphrase"] = credentials.passphrase
        return SignedRequest(
            method=request.method,
            url=f"{request.base_url}{request.path}",
            headers=headers,
            content=encode_json(request.payload) if request.payload else None,
        )


_SECRET_HEADERS = {"x-api-secret", "x-passphrase", "x-bapi-sign", "api-sign"}
_KEY_HEADERS = {"x-api-key", "x-mbx-apikey", "x-mexc-apikey", "x-bx-apikey", "x-bapi-api-key", "api-key"}


def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        lowered = key.lower()
        if lowered in _SECRET_HEADERS:
            redacted[key] = "<redacted>"
        elif lowered in _KEY_HEADERS:
            redacted[key] = f"{value[:4]}..." if value else ""
        else:
            redacted[key] = value
    return redacted


def sanitize_url(url: str) -> str:
    """Drop the signature from a signed query string."""
    if "signature=" not in url:
        return url
    head, _, _ = url.partition("signature=")
    return f"{head}signature=<redacted>"
