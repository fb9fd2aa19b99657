import base64
import hashlib
import hmac
from urllib.parse import parse_qsl, urlsplit

import orjson
import pytest

from src.errors import SigningError
from src.exchanges.signing import (
    GenericHeaderSigner,
    HeaderHmacSigner,
    NoncePathHmacSigner,
    QueryStringHmacSigner,
    UnsignedRequest,
    sanitize_headers,
    sanitize_url,
)
from src.models import ResolvedCredentials

TS = 1_700_000_000_000


def _creds(exchange: str = "Binance", **overrides) -> ResolvedCredentials:
    values = {
        "credential_id": "c1",
        "exchange": exchange,
        "exchange_key": exchange.lower(),
        "api_key": "key-123",
        "api_secret": "secret-456",
    }
    values.update(overrides)
    return ResolvedCredentials(**values)


def test_query_string_signer_appends_hex_hmac() -> None:
    signer = QueryStringHmacSigner(api_key_header="X-MBX-APIKEY", recv_window=5000)
    request = UnsignedRequest(
        "POST", "https://api.binance.com", "/api/v3/order", {"symbol": "BTCUSDT", "side": "BUY"}
    )

    signed = signer.sign(_creds(), request, TS)

    query = "symbol=BTCUSDT&side=BUY&timestamp=1700000000000&recvWindow=5000"
    expected = hmac.new(b"secret-456", query.encode(), hashlib.sha256).hexdigest()
    assert signed.url == f"https://api.binance.com/api/v3/order?{query}&signature={expected}"
    assert signed.headers == {"X-MBX-APIKEY": "key-123"}
    assert signed.content is None


def test_query_string_signer_is_deterministic_for_fixed_timestamp() -> None:
    signer = QueryStringHmacSigner(api_key_header="X-MEXC-APIKEY")
    request = UnsignedRequest("POST", "https://api.mexc.com", "/api/v3/order", {"symbol": "ETHUSDT"})
    assert signer.sign(_creds("MEXC"), request, TS) == signer.sign(_creds("MEXC"), request, TS)
    assert signer.sign(_creds("MEXC"), request, TS).url != signer.sign(_creds("MEXC"), request, TS + 1).url


def test_header_hmac_signer_covers_timestamp_key_window_and_body() -> None:
    signer = HeaderHmacSigner(recv_window=5000)
    payload = {"category": "spot", "symbol": "BTCUSDT", "qty": "0.5"}
    request = UnsignedRequest("POST", "https://api.bybit.com", "/v5/order/create", payload)

    signed = signer.sign(_creds("Bybit"), request, TS)

    body = orjson.dumps(payload)
    message = f"{TS}key-1235000{body.decode()}"
    expected = hmac.new(b"secret-456", message.encode(), hashlib.sha256).hexdigest()
    assert signed.content == body
    assert signed.headers["X-BAPI-SIGN"] == expected
    assert signed.headers["X-BAPI-API-KEY"] == "key-123"
    assert signed.headers["X-BAPI-TIMESTAMP"] == str(TS)
    assert signed.headers["X-BAPI-RECV-WINDOW"] == "5000"
    assert signed.url == "https://api.bybit.com/v5/order/create"


def test_nonce_path_signer_matches_kraken_scheme() -> None:
    secret_bytes = b"kraken-secret-bytes"
    creds = _creds("Kraken", api_secret=base64.b64encode(secret_bytes).decode())
    request = UnsignedRequest(
        "POST", "https://api.kraken.com", "/0/private/AddOrder", {"pair": "XBTUSDT", "type": "buy"}
    )

    signed = NoncePathHmacSigner().sign(creds, request, TS)

    body = f"nonce={TS}&pair=XBTUSDT&type=buy"
    digest = hashlib.sha256((str(TS) + body).encode()).digest()
    expected = base64.b64encode(
        hmac.new(secret_bytes, b"/0/private/AddOrder" + digest, hashlib.sha512).digest()
    ).decode()
    assert signed.content == body.encode()
    assert signed.headers["API-Sign"] == expected
    assert signed.headers["API-Key"] == "key-123"
    assert dict(parse_qsl(signed.content.decode()))["nonce"] == str(TS)


def test_nonce_path_signer_rejects_non_base64_secret() -> None:
    request = UnsignedRequest("POST", "https://api.kraken.com", "/0/private/AddOrder", {})
    with pytest.raises(SigningError):
        NoncePathHmacSigner().sign(_creds("Kraken", api_secret="not base64!!"), request, TS)


def test_generic_header_signer_includes_passphrase_when_present() -> None:
    request = UnsignedRequest("POST", "https://api.kucoin.com", "/api/v1/orders", {"size": "1"})
    signed = GenericHeaderSigner().sign(_creds("KuCoin", passphrase="pp"), request, TS)
    assert signed.headers["X-API-Key"] == "key-123"
    assert signed.headers["X-API-Secret"] == "secret-456"
    assert signed.headers["X-Passphrase"] == "pp"
    assert orjson.loads(signed.content) == {"size": "1"}

    without = GenericHeaderSigner().sign(_creds("CoinEx"), request, TS)
    assert "X-Passphrase" not in without.headers


def test_missing_key_raises_signing_error() -> None:
    request = UnsignedRequest("POST", "https://api.binance.com", "/api/v3/order", {})
    signer = QueryStringHmacSigner(api_key_header="X-MBX-APIKEY")
    with pytest.raises(SigningError):
        signer.sign(_creds(api_key=""), request, TS)
    with pytest.raises(SigningError):
        signer.sign(_creds(api_secret=""), request, TS)


def test_sanitizers_hide_secrets() -> None:
    headers = sanitize_headers(
        {"X-API-Key": "abcdefgh", "X-API-Secret": "s3cr3t", "Content-Type": "application/json"}
    )
    assert headers["X-API-Secret"] == "<redacted>"
    assert headers["X-API-Key"] == "abcd..."
    assert headers["Content-Type"] == "application/json"

    url = sanitize_url("https://api.binance.com/api/v3/order?symbol=BTCUSDT&signature=deadbeef")
    assert "deadbeef" not in url
    assert urlsplit(url).path == "/api/v3/order"
