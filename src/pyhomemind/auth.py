"""Identity provider contract and the Firebase Auth implementation.

Endpoints (Identity Toolkit / Secure Token REST):
  - accounts:signUp                 anonymous sign-in
  - accounts:signInWithCustomToken  custom-token sign-in
  - accounts:signInWithIdp          link a federated credential
  - accounts:lookup                 profile of the signed-in account
  - securetoken token               id-token refresh
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import urlencode

from pyhomemind._constants import IDENTITY_TOOLKIT_URL, SECURE_TOKEN_URL
from pyhomemind._redact import redact_for_log
from pyhomemind._transport import Transport
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import HomeMindAuthenticationError, HomeMindTransportError
from pyhomemind.models.identity import Identity
from pyhomemind.session import DEFAULT_SESSION_TTL, AuthSession

_logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], None]


class IdentityProvider(Protocol):
    """What the sync engine bootstrap needs from an identity provider."""

    @property
    def current(self) -> Identity | None: ...

    async def sign_in_anonymously(self) -> Identity: ...

    async def sign_in_with_custom_token(self, token: str) -> Identity: ...

    async def link_with_idp(
        self,
        provider_id: str,
        *,
        id_token: str | None = None,
        access_token: str | None = None,
    ) -> Identity: ...

    async def sign_out(self) -> None: ...

    async def id_token(self) -> str | None: ...

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]: ...


def _ttl(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return DEFAULT_SESSION_TTL


class FirebaseIdentityProvider:
    """Firebase Auth over REST.

    Usage::

        provider = FirebaseIdentityProvider(config, transport)
        identity = await provider.sign_in_anonymously()
        token = await provider.id_token()
    """

    def __init__(self, config: HomeMindConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport
        self._session: AuthSession | None = None
        self._identity: Identity | None = None
        self._listeners: list[IdentityListener] = []
        self._refresh_lock = asyncio.Lock()

    @property
    def current(self) -> Identity | None:
        return self._identity

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a state-changed listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _set_identity(self, identity: Identity | None) -> None:
        changed = identity != self._identity
        self._identity = identity
        if not changed:
            return
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception:
                _logger.debug("Identity listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # REST helpers
    # ------------------------------------------------------------------

    async def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self._transport.request(
                "POST",
                url,
                params=[("key", self._config.api_key)],
                json_body=body,
            )
        except HomeMindTransportError as exc:
            raise HomeMindAuthenticationError(str(exc), code=exc.status) from exc

    def _accounts_url(self, action: str) -> str:
        return f"{IDENTITY_TOOLKIT_URL}/accounts:{action}"

    def _store_session(self, response: dict[str, Any], *, uid: str | None = None) -> AuthSession:
        id_token = response.get("idToken") or response.get("id_token")
        refresh_token = response.get("refreshToken") or response.get("refresh_token")
        local_id = uid or response.get("localId") or response.get("user_id")
        if not id_token or not refresh_token or not local_id:
            _logger.debug("Unexpected auth response: %s", redact_for_log(response))
            raise HomeMindAuthenticationError("Sign-in response missing token fields")
        session = AuthSession(
            uid=str(local_id),
            id_token=str(id_token),
            refresh_token=str(refresh_token),
            ttl=_ttl(response.get("expiresIn") or response.get("expires_in")),
        )
        self._session = session
        return session

    async def _lookup(self, id_token: str) -> dict[str, Any]:
        response = await self._post(self._accounts_url("lookup"), {"idToken": id_token})
        users = response.get("users")
        if not isinstance(users, list) or not users or not isinstance(users[0], dict):
            raise HomeMindAuthenticationError("Account lookup returned no user")
        return users[0]

    @staticmethod
    def _identity_from(account: dict[str, Any], *, anonymous: bool) -> Identity:
        return Identity(
            uid=str(account.get("localId") or ""),
            is_anonymous=anonymous,
            display_name=account.get("displayName"),
            photo_url=account.get("photoUrl"),
            email=account.get("email"),
        )

    # ------------------------------------------------------------------
    # Sign-in flows
    # ------------------------------------------------------------------

    async def sign_in_anonymously(self) -> Identity:
        response = await self._post(self._accounts_url("signUp"), {"returnSecureToken": True})
        session = self._store_session(response)
        identity = Identity(uid=session.uid, is_anonymous=True)
        _logger.debug("Signed in anonymously uid=%s", identity.uid)
        self._set_identity(identity)
        return identity

    async def sign_in_with_custom_token(self, token: str) -> Identity:
        response = await self._post(
            self._accounts_url("signInWithCustomToken"),
            {"token": token, "returnSecureToken": True},
        )
        account = await self._lookup(str(response.get("idToken") or ""))
        self._store_session(response, uid=str(account.get("localId") or ""))
        anonymous = not account.get("email") and not account.get("providerUserInfo")
        identity = self._identity_from(account, anonymous=anonymous)
        _logger.debug("Signed in with custom token uid=%s", identity.uid)
        self._set_identity(identity)
        return identity

    async def link_with_idp(
        self,
        provider_id: str,
        *,
        id_token: str | None = None,
        access_token: str | None = None,
    ) -> Identity:
        """Upgrade the current (anonymous) account with a federated credential."""
        if not id_token and not access_token:
            raise ValueError("An id_token or access_token from the federated provider is required")
        current_token = await self.id_token()
        if current_token is None:
            raise HomeMindAuthenticationError("No signed-in account to link")

        post_fields = {"providerId": provider_id}
        if id_token:
            post_fields["id_token"] = id_token
        if access_token:
            post_fields["access_token"] = access_token
        request_uri = f"https://{self._config.auth_domain}" if self._config.auth_domain else "http://localhost"

        response = await self._post(
            self._accounts_url("signInWithIdp"),
            {
                "postBody": urlencode(post_fields),
                "requestUri": request_uri,
                "idToken": current_token,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        self._store_session(response)
        identity = self._identity_from(response, anonymous=False)
        _logger.debug("Linked provider=%s uid=%s", provider_id, identity.uid)
        self._set_identity(identity)
        return identity

    async def sign_out(self) -> None:
        self._session = None
        self._set_identity(None)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def id_token(self) -> str | None:
        """Return a valid id token, refreshing it when close to expiry."""
        session = self._session
        if session is None:
            return None
        if not session.expires_within(self._config.session_ttl_margin):
            return session.id_token
        async with self._refresh_lock:
            session = self._session
            if session is None:
                return None
            if session.expires_within(self._config.session_ttl_margin):
                session = await self._refresh(session)
        return session.id_token

    async def _refresh(self, session: AuthSession) -> AuthSession:
        _logger.debug("Refreshing id token uid=%s age=%.0fs", session.uid, session.age)
        try:
            response = await self._transport.request(
                "POST",
                SECURE_TOKEN_URL,
                params=[("key", self._config.api_key)],
                json_body={"grant_type": "refresh_token", "refresh_token": session.refresh_token},
            )
        except HomeMindTransportError as exc:
            raise HomeMindAuthenticationError(f"Token refresh failed: {exc}", code=exc.status) from exc
        return self._store_session(response, uid=session.uid)
