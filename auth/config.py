"""Auth configuration management."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from dotenv import load_dotenv

# Load .env file before reading config
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=True)
else:
    load_dotenv(override=True)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env(name: str) -> str | None:
    value = os.getenv(name)
    return value or None


_DEFAULT_AUTH_SECRET = secrets.token_urlsafe(32)
_DEFAULT_PORT = int(os.getenv("PORT", "5174"))


@dataclass(frozen=True)
class AuthConfig:
    """Configuration values for the session gateway."""

    # Identity provider (Keycloak realm issuer, e.g. https://idp/realms/app)
    OIDC_ISSUER: str | None = field(default_factory=lambda: _env("KEYCLOAK_ISSUER"))
    OIDC_CLIENT_ID: str | None = field(default_factory=lambda: _env("KEYCLOAK_CLIENT_ID"))
    OIDC_CLIENT_SECRET: str | None = field(default_factory=lambda: _env("KEYCLOAK_CLIENT_SECRET"))
    OIDC_SCOPE: str = field(default_factory=lambda: os.getenv("KEYCLOAK_SCOPE", "openid profile email"))

    AUTH_SECRET: str = field(default_factory=lambda: os.getenv("AUTH_SECRET", _DEFAULT_AUTH_SECRET))
    SESSION_ALGORITHM: str = field(default_factory=lambda: os.getenv("AUTH_JWT_ALGORITHM", "HS256"))
    SESSION_MAX_AGE_SECONDS: int = field(
        default_factory=lambda: int(os.getenv("SESSION_MAX_AGE_SECONDS", str(30 * 24 * 60 * 60)))
    )
    SESSION_COOKIE_NAME: str = field(default_factory=lambda: os.getenv("SESSION_COOKIE_NAME", "session_token"))

    APP_URL: str = field(default_factory=lambda: os.getenv("APP_URL", "http://localhost:5173"))
    PORT: int = _DEFAULT_PORT
    AUTH_URL: str = field(
        default_factory=lambda: os.getenv("AUTH_URL", f"http://localhost:{_DEFAULT_PORT}")
    )

    REFRESH_WINDOW_SECONDS: int = field(default_factory=lambda: int(os.getenv("REFRESH_WINDOW_SECONDS", "60")))
    DEFAULT_TOKEN_LIFETIME_SECONDS: int = field(
        default_factory=lambda: int(os.getenv("DEFAULT_TOKEN_LIFETIME_SECONDS", "3600"))
    )
    TOKEN_REQUEST_TIMEOUT_SECONDS: float = field(
        default_factory=lambda: float(os.getenv("TOKEN_REQUEST_TIMEOUT_SECONDS", "10"))
    )
    OAUTH_FLOW_MAX_AGE_SECONDS: int = 600

    COOKIE_SECURE: bool = field(default_factory=lambda: _parse_bool(os.getenv("COOKIE_SECURE"), False))
    COOKIE_HTTP_ONLY: bool = field(default_factory=lambda: _parse_bool(os.getenv("COOKIE_HTTP_ONLY"), True))
    COOKIE_SAMESITE: str = field(default_factory=lambda: os.getenv("COOKIE_SAME_SITE", "lax"))
    COOKIE_DOMAIN: str | None = field(default_factory=lambda: _env("COOKIE_DOMAIN"))

    CSRF_COOKIE_NAME: str = field(default_factory=lambda: os.getenv("CSRF_COOKIE_NAME", "csrf_token"))
    CSRF_HEADER_NAME: str = field(default_factory=lambda: os.getenv("CSRF_HEADER_NAME", "X-CSRF-Token"))

    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def is_provider_configured(self) -> bool:
        return bool(self.OIDC_ISSUER and self.OIDC_CLIENT_ID and self.OIDC_CLIENT_SECRET)

    @property
    def _oidc_base(self) -> str:
        return f"{(self.OIDC_ISSUER or '').rstrip('/')}/protocol/openid-connect"

    @property
    def token_endpoint(self) -> str:
        return f"{self._oidc_base}/token"

    @property
    def authorization_endpoint(self) -> str:
        return f"{self._oidc_base}/auth"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self._oidc_base}/userinfo"

    @property
    def use_cors(self) -> bool:
        """CORS is only needed when the SPA and this service live on different origins."""
        try:
            auth_origin = urlsplit(self.AUTH_URL)
            app_origin = urlsplit(self.APP_URL)
        except ValueError:
            return True
        return (auth_origin.scheme, auth_origin.netloc) != (app_origin.scheme, app_origin.netloc)
