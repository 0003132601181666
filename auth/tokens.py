"""Session token value type and the refresh decision."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

REFRESH_WINDOW_SECONDS = 60


class TokenError(str, Enum):
    REFRESH_FAILED = "RefreshTokenError"


class SessionState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    REFRESHING = "refreshing"
    ERROR = "error"


@dataclass(frozen=True)
class SessionToken:
    """Credential state carried inside the signed session cookie.

    Instances are never mutated; every transition returns a new value so a
    reference held across an ``await`` stays valid.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | float | str | None = None  # epoch seconds
    subject_id: str | None = None
    error: TokenError | None = None
    name: str | None = None
    email: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.error is not None

    def with_error(self) -> SessionToken:
        """Return this token marked as terminally failed.

        Credential fields are kept as they were; the flag alone forces the
        client to sign in again.
        """
        return replace(self, error=TokenError.REFRESH_FAILED)

    def rotated(
        self,
        access_token: str,
        refresh_token: str | None,
        expires_at: int,
    ) -> SessionToken:
        """Return the token after a successful exchange.

        The expiry never moves backwards: a lifetime shorter than what was
        left keeps the previous expiry.
        """
        previous = normalize_expires_at(self.expires_at)
        if previous is not None and previous > expires_at:
            expires_at = math.ceil(previous)
        return replace(
            self,
            access_token=access_token,
            refresh_token=refresh_token or self.refresh_token,
            expires_at=expires_at,
            error=None,
        )

    def to_claims(self) -> dict[str, Any]:
        claims: dict[str, Any] = {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }
        if self.subject_id is not None:
            claims["sub"] = self.subject_id
        if self.error is not None:
            claims["error"] = self.error.value
        if self.name is not None:
            claims["name"] = self.name
        if self.email is not None:
            claims["email"] = self.email
        return claims

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> SessionToken:
        error = claims.get("error")
        return cls(
            access_token=claims.get("access_token"),
            refresh_token=claims.get("refresh_token"),
            expires_at=claims.get("expires_at"),
            subject_id=claims.get("sub"),
            error=TokenError.REFRESH_FAILED if error else None,
            name=claims.get("name"),
            email=claims.get("email"),
        )


def normalize_expires_at(value: Any) -> float | None:
    """Coerce a number or numeric string to float; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        expires_at = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(expires_at) or math.isinf(expires_at):
        return None
    return expires_at


def should_refresh(
    token: SessionToken,
    now: float | None = None,
    window: int = REFRESH_WINDOW_SECONDS,
) -> bool:
    """Whether the access credential is inside the refresh window.

    Never rotates speculatively: a missing or unparseable expiry means no.
    """
    expires_at = normalize_expires_at(token.expires_at)
    if expires_at is None:
        return False
    if now is None:
        now = time.time()
    return now >= expires_at - window


def session_state(
    token: SessionToken,
    now: float | None = None,
    window: int = REFRESH_WINDOW_SECONDS,
    refreshing: bool = False,
) -> SessionState:
    if token.is_terminal:
        return SessionState.ERROR
    if not should_refresh(token, now=now, window=window):
        return SessionState.FRESH
    if refreshing:
        return SessionState.REFRESHING
    return SessionState.STALE
