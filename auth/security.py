"""Security utilities for auth."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from auth.config import AuthConfig
from auth.exceptions import AuthException
from auth.tokens import SessionToken

logger = logging.getLogger(__name__)


def encode_session(token: SessionToken, config: AuthConfig, now: datetime | None = None) -> tuple[str, datetime]:
    """Sign a session token for the cookie. Returns the value and its expiry."""
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(seconds=config.SESSION_MAX_AGE_SECONDS)
    payload: dict[str, Any] = token.to_claims()
    payload["iat"] = now
    payload["exp"] = expire
    encoded = jwt.encode(payload, config.AUTH_SECRET, algorithm=config.SESSION_ALGORITHM)
    return encoded, expire


def decode_session(value: str, config: AuthConfig) -> SessionToken:
    try:
        claims = jwt.decode(value, config.AUTH_SECRET, algorithms=[config.SESSION_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected session cookie: %s", exc)
        raise AuthException("Invalid session", status_code=401) from exc
    return SessionToken.from_claims(claims)


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(24)


def secure_compare(expected: str | None, provided: str | None) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def generate_state() -> str:
    return secrets.token_urlsafe(24)


def generate_code_verifier() -> str:
    return secrets.token_urlsafe(64)


def code_challenge(verifier: str) -> str:
    """S256 PKCE challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
