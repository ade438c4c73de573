"""JSON-over-HTTP transport shared by the identity provider and Firestore store."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import aiohttp

from pyhomemind._constants import USER_AGENT
from pyhomemind._redact import redact_for_log
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import HomeMindPermissionDeniedError, HomeMindTransportError

_logger = logging.getLogger(__name__)

QueryParams = Sequence[tuple[str, str]]


class Transport(Protocol):
    """Structural transport interface used by the store and auth modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: QueryParams | None = None,
        json_body: Mapping[str, Any] | None = None,
        bearer: str | None = None,
    ) -> dict[str, Any]:
        ...


def _google_error(text: str) -> tuple[str, str]:
    """Extract ``(status, message)`` from a Google API error body."""
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return "", text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return "", text[:200]
    status = str(error.get("status") or "")
    message = str(error.get("message") or "")
    return status, message


class HttpTransport:
    """aiohttp-backed transport that maps Google API errors to exceptions."""

    def __init__(self, config: HomeMindConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: QueryParams | None = None,
        json_body: Mapping[str, Any] | None = None,
        bearer: str | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON object.

        Raises :class:`HomeMindPermissionDeniedError` for HTTP 403 or a
        ``PERMISSION_DENIED`` status and :class:`HomeMindTransportError` for
        every other failure.
        """
        headers: dict[str, str] = {"user-agent": USER_AGENT}
        if bearer:
            headers["authorization"] = f"Bearer {bearer}"
        endpoint = url.split("?", 1)[0]

        _logger.debug("%s %s params=%s body=%s", method, endpoint, redact_for_log(params), redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                params=list(params) if params else None,
                json=dict(json_body) if json_body is not None else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    status, message = _google_error(text)
                    error_cls = (
                        HomeMindPermissionDeniedError
                        if resp.status == 403 or status == "PERMISSION_DENIED"
                        else HomeMindTransportError
                    )
                    raise error_cls(
                        f"HTTP {resp.status} from {endpoint}: {message or status}",
                        status_code=resp.status,
                        status=status or message,
                        endpoint=endpoint,
                    )
        except HomeMindTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise HomeMindTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return {}
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HomeMindTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
        if not isinstance(result, dict):
            raise HomeMindTransportError(f"Expected a JSON object from {endpoint}", endpoint=endpoint)
        return result
