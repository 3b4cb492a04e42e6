"""HTTP transport with api-key headers and JSON decoding."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import aiohttp

from pyleadmap._constants import USER_AGENT
from pyleadmap._redact import redact_for_log
from pyleadmap.exceptions import BackendRejectionError, LeadMapTransportError

_logger = logging.getLogger(__name__)

QueryParams = Mapping[str, Any] | Sequence[tuple[str, Any]]


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        body: Any = None,
    ) -> Any:
        ...


def _flatten_params(params: QueryParams | None) -> list[tuple[str, str]]:
    """Turn a mapping or pair sequence into aiohttp-safe string pairs, dropping ``None``."""
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    flat: list[tuple[str, str]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        flat.append((str(key), str(value)))
    return flat


def _error_message(payload: Any) -> tuple[str, str] | None:
    """Extract ``(message, details)`` from an error body, if it has one."""
    if not isinstance(payload, dict):
        return None
    message = payload.get("message") or payload.get("error") or payload.get("msg")
    if not message:
        return None
    details = payload.get("details") or payload.get("hint") or ""
    return str(message), str(details)


class HttpTransport:
    """JSON-over-HTTP transport bound to one base URL and api key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers: dict[str, str] = {
            "accept": "application/json",
            "apikey": api_key,
            "authorization": f"Bearer {api_key}",
            "user-agent": USER_AGENT,
        }

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        body: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Empty 2xx bodies (e.g. ``204`` on delete) decode to ``None``.

        Raises
        ------
        BackendRejectionError
            Non-2xx response whose body carries an error message.
        LeadMapTransportError
            Network failure, other non-2xx responses, or a body that is not JSON.
        """
        url = f"{self._base_url}{endpoint}"
        query = _flatten_params(params)
        headers = dict(self._headers)
        if body is not None:
            headers["content-type"] = "application/json"

        _logger.debug(
            "%s %s params=%s body=%s",
            method,
            url,
            redact_for_log(query),
            redact_for_log(body),
        )

        try:
            async with self._http.request(
                method,
                url,
                params=query or None,
                data=json.dumps(body, separators=(",", ":")) if body is not None else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise LeadMapTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise LeadMapTransportError(
                f"Request to {endpoint} timed out",
                endpoint=endpoint,
            ) from exc

        payload: Any = None
        decode_error: json.JSONDecodeError | None = None
        if text.strip():
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as exc:
                decode_error = exc

        if not 200 <= status < 300:
            extracted = _error_message(payload)
            if extracted is not None:
                message, details = extracted
                raise BackendRejectionError(
                    f"{endpoint} rejected (HTTP {status}): {message}",
                    status_code=status,
                    endpoint=endpoint,
                    details=details,
                )
            raise LeadMapTransportError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )

        if decode_error is not None:
            raise LeadMapTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from decode_error

        return payload
