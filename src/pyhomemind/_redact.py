"""Helpers for safe debug logging.

pyhomemind handles id tokens, refresh tokens and API keys, and documents
may embed images as large ``data:`` URLs. This module provides a small
utility to redact sensitive fields and shorten blobs before emitting
DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "idtoken",
        "id_token",
        "refreshtoken",
        "refresh_token",
        "accesstoken",
        "access_token",
        "oauthidtoken",
        "token",
        "key",
        "apikey",
        "api_key",
        "authorization",
        "postbody",
    }
)

_DATA_URL_PREFIX = "data:"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if value.startswith(_DATA_URL_PREFIX) and len(value) > 64:
            header, _, _ = value.partition(",")
            return f"<{header}:{len(value)}b>"
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    # Query parameters are (name, value) pairs.
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str):
        if value[0].lower() in _SENSITIVE_VALUE_KEYS:
            return [value[0], "<redacted>"]

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
