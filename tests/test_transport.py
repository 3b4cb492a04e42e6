"""Tests for HttpTransport status and payload handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from pyleadmap._transport import HttpTransport, _flatten_params
from pyleadmap.exceptions import BackendRejectionError, LeadMapApiError, LeadMapTransportError


@dataclass
class _FakeResponse:
    status: int
    body: str

    async def text(self) -> str:
        return self.body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class _FakeSession:
    status: int = 200
    body: str = ""
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, self.body)


def _transport(session: _FakeSession) -> HttpTransport:
    return HttpTransport("https://api.example.test/", "anon-key", session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_sends_key_headers_and_repeated_params() -> None:
    session = _FakeSession(body='{"restaurants": []}')

    payload = await _transport(session).request_json(
        "GET",
        "/api/restaurants",
        params=[("column", "status"), ("column", "name"), ("skip", None)],
    )

    assert payload == {"restaurants": []}
    call = session.calls[0]
    assert call["url"] == "https://api.example.test/api/restaurants"
    assert call["params"] == [("column", "status"), ("column", "name")]
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["authorization"] == "Bearer anon-key"
    assert "content-type" not in call["headers"]


@pytest.mark.asyncio
async def test_json_body_is_compact() -> None:
    session = _FakeSession(body="3")

    result = await _transport(session).request_json("POST", "/rpc", body={"a": 1, "b": None})

    assert result == 3
    assert session.calls[0]["data"] == '{"a":1,"b":null}'
    assert session.calls[0]["headers"]["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_empty_success_body_is_none() -> None:
    assert await _transport(_FakeSession(status=204)).request_json("DELETE", "/api/territories") is None


@pytest.mark.asyncio
async def test_error_payload_becomes_rejection() -> None:
    session = _FakeSession(status=400, body='{"message": "bad polygon", "details": "ring not closed"}')

    with pytest.raises(BackendRejectionError) as excinfo:
        await _transport(session).request_json("POST", "/api/saveTerritory", body={})

    assert isinstance(excinfo.value, LeadMapApiError)
    assert excinfo.value.status_code == 400
    assert excinfo.value.endpoint == "/api/saveTerritory"
    assert "bad polygon" in str(excinfo.value)


@pytest.mark.asyncio
async def test_plain_http_error_is_transport_error() -> None:
    session = _FakeSession(status=502, body="<html>bad gateway</html>")

    with pytest.raises(LeadMapTransportError) as excinfo:
        await _transport(session).request_json("GET", "/api/territories")

    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_invalid_json_is_transport_error() -> None:
    with pytest.raises(LeadMapTransportError, match="Invalid JSON"):
        await _transport(_FakeSession(body="not json")).request_json("GET", "/api/territories")


@pytest.mark.asyncio
async def test_client_error_is_wrapped() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("reset"))

    with pytest.raises(LeadMapTransportError, match="failed") as excinfo:
        await _transport(session).request_json("GET", "/api/territories")

    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)


def test_flatten_params_stringifies_values() -> None:
    assert _flatten_params({"flag": True, "n": 3, "none": None}) == [("flag", "true"), ("n", "3")]
    assert _flatten_params(None) == []
