"""Session state for authenticated identity-provider calls."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

#: Firebase id tokens live for one hour unless ``expiresIn`` says otherwise.
DEFAULT_SESSION_TTL: float = 3600.0


class AuthSession(BaseModel):
    """Tokens obtained from a successful sign-in.

    Parameters
    ----------
    uid : str
        The authenticated user's id (``localId``).
    id_token : str
        Bearer token sent to the document store.
    refresh_token : str
        Token exchanged for a new ``id_token`` once this one expires.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the tokens were
        issued. Defaults to *now* if not provided.
    ttl : float
        Id token lifetime in seconds (``expiresIn``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    uid: str
    id_token: str
    refresh_token: str
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = DEFAULT_SESSION_TTL

    def expires_within(self, margin: float) -> bool:
        """Whether the id token expires in less than *margin* seconds."""
        return (time.monotonic() - self.created_at) >= (self.ttl - margin)

    @property
    def is_expired(self) -> bool:
        """Whether the id token has exceeded its TTL."""
        return self.expires_within(0.0)

    @property
    def age(self) -> float:
        """Seconds since the tokens were issued."""
        return time.monotonic() - self.created_at
