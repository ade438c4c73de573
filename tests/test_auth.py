from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs

import pytest

from pyhomemind.auth import FirebaseIdentityProvider
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import HomeMindAuthenticationError, HomeMindTransportError
from pyhomemind.models.identity import Identity

CONFIG = HomeMindConfig(api_key="web-key", project_id="demo", auth_domain="demo.firebaseapp.com")


class _FakeTransport:
    def __init__(self, *responses: dict[str, Any] | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, Mapping[str, Any] | None]] = []

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Any = None,
        json_body: Mapping[str, Any] | None = None,
        bearer: str | None = None,
    ) -> dict[str, Any]:
        assert method == "POST"
        assert params == [("key", "web-key")]
        self.calls.append((url, json_body))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _tokens(uid: str, *, id_token: str = "id-1", expires_in: str = "3600") -> dict[str, Any]:
    return {"localId": uid, "idToken": id_token, "refreshToken": "refresh-1", "expiresIn": expires_in}


@pytest.mark.asyncio
async def test_anonymous_sign_in_notifies_listeners() -> None:
    transport = _FakeTransport(_tokens("anon-1"))
    provider = FirebaseIdentityProvider(CONFIG, transport)
    seen: list[Identity | None] = []
    remove = provider.add_listener(seen.append)

    identity = await provider.sign_in_anonymously()

    assert identity == Identity(uid="anon-1", is_anonymous=True)
    assert provider.current == identity
    assert seen == [identity]
    assert transport.calls[0][0].endswith("/accounts:signUp")
    assert await provider.id_token() == "id-1"

    remove()
    await provider.sign_out()
    assert seen == [identity]
    assert provider.current is None
    assert await provider.id_token() is None


@pytest.mark.asyncio
async def test_custom_token_sign_in_looks_up_account() -> None:
    transport = _FakeTransport(
        {"idToken": "id-2", "refreshToken": "refresh-2", "expiresIn": "3600"},
        {"users": [{"localId": "user-9", "email": "sam@example.com", "displayName": "Sam"}]},
    )
    provider = FirebaseIdentityProvider(CONFIG, transport)

    identity = await provider.sign_in_with_custom_token("custom")

    assert identity.uid == "user-9"
    assert identity.is_anonymous is False
    assert identity.display_name == "Sam"
    assert transport.calls[0][1] == {"token": "custom", "returnSecureToken": True}
    assert transport.calls[1][1] == {"idToken": "id-2"}


@pytest.mark.asyncio
async def test_transport_failures_become_authentication_errors() -> None:
    transport = _FakeTransport(HomeMindTransportError("HTTP 400", status_code=400, status="ADMIN_ONLY_OPERATION"))
    provider = FirebaseIdentityProvider(CONFIG, transport)

    with pytest.raises(HomeMindAuthenticationError) as excinfo:
        await provider.sign_in_anonymously()

    assert excinfo.value.code == "ADMIN_ONLY_OPERATION"
    assert provider.current is None


@pytest.mark.asyncio
async def test_incomplete_sign_in_response_is_rejected() -> None:
    provider = FirebaseIdentityProvider(CONFIG, _FakeTransport({"localId": "anon-1"}))

    with pytest.raises(HomeMindAuthenticationError):
        await provider.sign_in_anonymously()


@pytest.mark.asyncio
async def test_expiring_token_is_refreshed() -> None:
    transport = _FakeTransport(
        _tokens("anon-1", expires_in="30"),
        {"id_token": "id-fresh", "refresh_token": "refresh-fresh", "user_id": "anon-1", "expires_in": "3600"},
    )
    provider = FirebaseIdentityProvider(CONFIG, transport)
    await provider.sign_in_anonymously()

    assert await provider.id_token() == "id-fresh"
    assert transport.calls[1][1] == {"grant_type": "refresh_token", "refresh_token": "refresh-1"}
    # Fresh token is good for an hour; no further refresh.
    assert await provider.id_token() == "id-fresh"
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_link_with_idp_upgrades_identity() -> None:
    transport = _FakeTransport(
        _tokens("anon-1"),
        {**_tokens("anon-1", id_token="id-linked"), "displayName": "Sam", "email": "sam@example.com"},
    )
    provider = FirebaseIdentityProvider(CONFIG, transport)
    await provider.sign_in_anonymously()

    identity = await provider.link_with_idp("google.com", id_token="google-jwt")

    url, body = transport.calls[1]
    assert body is not None
    assert url.endswith("/accounts:signInWithIdp")
    assert body["idToken"] == "id-1"
    assert body["requestUri"] == "https://demo.firebaseapp.com"
    assert parse_qs(body["postBody"]) == {"providerId": ["google.com"], "id_token": ["google-jwt"]}
    assert identity.uid == "anon-1"
    assert identity.is_anonymous is False
    assert identity.email == "sam@example.com"
    assert await provider.id_token() == "id-linked"


@pytest.mark.asyncio
async def test_link_requires_a_credential() -> None:
    provider = FirebaseIdentityProvider(CONFIG, _FakeTransport())

    with pytest.raises(ValueError):
        await provider.link_with_idp("google.com")
