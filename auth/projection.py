"""Map internal token state to the session view exposed to the browser."""

from __future__ import annotations

from datetime import datetime, timezone

from auth.schemas import SessionResponse, SessionUser
from auth.tokens import SessionToken


def format_expires(expires: datetime | str) -> str:
    if isinstance(expires, str):
        return expires
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def project_session(token: SessionToken, expires: datetime | str) -> SessionResponse:
    """Build the session view; ``expires`` is when the session cookie lapses.

    Only the subject and profile claims are copied across. The access and
    refresh credentials have no slot in ``SessionResponse``.
    """
    return SessionResponse(
        user=SessionUser(id=token.subject_id, name=token.name, email=token.email),
        expires=format_expires(expires),
        error=token.error.value if token.error is not None else None,
    )
