"""Explicit session context passed to every engine operation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from mealtrack.errors import AuthExpiredError

VALID_ROLES = ("client", "coach")


@dataclass(frozen=True)
class SessionContext:
    """Caller-supplied credential for one request.

    Attributes:
        user_id: The user the operation acts for
        token: Opaque credential issued by the authentication collaborator
        expires_at: Expiry instant; None means the credential does not expire
        role: 'client' or 'coach'
    """

    user_id: int
    token: str = ""
    expires_at: Optional[datetime] = None
    role: str = "client"

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(f"role must be one of {VALID_ROLES}, got '{self.role}'")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(self.expires_at.tzinfo)
        return now >= self.expires_at

    def require_valid(self, now: Optional[datetime] = None) -> None:
        """Raise AuthExpiredError if the session cannot be used.

        The engine never refreshes credentials; the caller re-authenticates.
        """
        if self.user_id is None:
            raise AuthExpiredError("Authentication required")
        if self.is_expired(now):
            raise AuthExpiredError("Your session has expired. Please sign in again.")


def local_session(user_id: int, role: str = "client") -> SessionContext:
    """Session for local single-user use (CLI, scripts)."""
    return SessionContext(user_id=user_id, token="local", role=role)


def new_idempotency_key() -> str:
    """Client-generated key that makes a retried delete provably safe."""
    return uuid.uuid4().hex
