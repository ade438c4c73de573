"""Share links: the ``share`` query parameter selects a read-only view."""

from __future__ import annotations

import secrets
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from pyhomemind._constants import SHARE_QUERY_PARAM


def new_share_token() -> str:
    return secrets.token_urlsafe(16)


def share_token_from_url(url: str) -> str | None:
    """Return the share token carried by *url*, if any."""
    values = parse_qs(urlsplit(url).query).get(SHARE_QUERY_PARAM)
    if not values:
        return None
    token = values[0].strip()
    return token or None


def build_share_url(base_url: str, token: str) -> str:
    """Set the share parameter on *base_url*, keeping other parameters."""
    parts = urlsplit(base_url)
    query = {key: values for key, values in parse_qs(parts.query).items() if key != SHARE_QUERY_PARAM}
    query[SHARE_QUERY_PARAM] = [token]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))
