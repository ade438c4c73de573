"""Session bootstrap transitions and read-error classification.

This module contains no I/O; the sync engine asks it whether a phase
change is legal and how a subscription error should be surfaced.
"""

from __future__ import annotations

from pyhomemind._constants import PERMISSION_DENIED_MESSAGE
from pyhomemind.exceptions import HomeMindPermissionDeniedError
from pyhomemind.state.events import SessionPhase

_TRANSITIONS: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.UNAUTHENTICATED: frozenset({SessionPhase.AUTHENTICATING}),
    SessionPhase.AUTHENTICATING: frozenset({SessionPhase.AUTHENTICATED, SessionPhase.AUTH_FAILED}),
    SessionPhase.AUTHENTICATED: frozenset({SessionPhase.SUBSCRIBING, SessionPhase.UNAUTHENTICATED}),
    SessionPhase.AUTH_FAILED: frozenset(),
    SessionPhase.SUBSCRIBING: frozenset(
        {SessionPhase.SYNCED, SessionPhase.READ_ERROR, SessionPhase.SUBSCRIBING, SessionPhase.UNAUTHENTICATED}
    ),
    SessionPhase.SYNCED: frozenset(
        {SessionPhase.READ_ERROR, SessionPhase.SUBSCRIBING, SessionPhase.UNAUTHENTICATED}
    ),
    SessionPhase.READ_ERROR: frozenset(),
}


def can_transition(current: SessionPhase, target: SessionPhase) -> bool:
    """Whether the bootstrap may move from *current* to *target*."""
    return target in _TRANSITIONS[current]


def is_terminal(phase: SessionPhase) -> bool:
    """``AUTH_FAILED`` and ``READ_ERROR`` end the session; recovery is a new client."""
    return not _TRANSITIONS[phase]


def describe_read_error(error: BaseException) -> tuple[str, bool]:
    """Classify a subscription error.

    Returns the user-visible message and whether writes must be halted.
    Permission errors get a fixed diagnostic pointing at the security
    rules; everything else shows the raw message.
    """
    if isinstance(error, HomeMindPermissionDeniedError):
        return PERMISSION_DENIED_MESSAGE, True
    return str(error) or type(error).__name__, False
