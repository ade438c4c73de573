"""Custom exception hierarchy for pyhomemind."""

from __future__ import annotations


class HomeMindError(Exception):
    """Base exception for all pyhomemind errors."""


class HomeMindConfigError(HomeMindError):
    """Invalid or missing backend configuration."""


class HomeMindTransportError(HomeMindError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        status: str = "",
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.status = status
        self.endpoint = endpoint
        super().__init__(message)


class HomeMindPermissionDeniedError(HomeMindTransportError):
    """The document store rejected the request (``PERMISSION_DENIED``).

    Usually caused by security rules that do not allow the signed-in
    identity to read or write the resolved document path.
    """


class HomeMindAuthenticationError(HomeMindError):
    """Sign-in, account link or token refresh failed."""

    def __init__(self, message: str, *, code: str = "") -> None:
        self.code = code
        super().__init__(message)


class HomeMindReadError(HomeMindError):
    """The document subscription failed for a reason other than permissions."""


class HomeMindReadOnlyError(HomeMindError):
    """A mutation was attempted on a read-only (shared view) session."""


class HomeMindEntityNotFoundError(HomeMindError, KeyError):
    """No space, item, option or checklist entry with the given id."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class HomeMindImageTooLargeError(HomeMindError):
    """Image file exceeds ``HomeMindConfig.max_image_bytes``."""


class HomeMindSessionStateError(HomeMindError):
    """Illegal session bootstrap transition."""
