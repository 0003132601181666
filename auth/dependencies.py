"""Auth dependency helpers and component wiring."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from fastapi import Depends, HTTPException, Request, Response

from auth.config import AuthConfig
from auth.exceptions import AuthException
from auth.security import decode_session, secure_compare
from auth.services.oauth_service import OAuthService
from auth.services.refresh_client import UpstreamRefreshClient
from auth.services.refresh_coordinator import RefreshCoordinator
from auth.services.session_service import SessionService
from auth.tokens import SessionToken


_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@dataclass
class AuthComponents:
    """Everything the auth routes need, owned by the application lifespan."""

    config: AuthConfig
    http_client: httpx.AsyncClient
    coordinator: RefreshCoordinator
    session_service: SessionService
    oauth_service: OAuthService

    async def aclose(self) -> None:
        self.coordinator.clear()
        await self.http_client.aclose()


def build_components(
    config: AuthConfig,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.time,
) -> AuthComponents:
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=config.TOKEN_REQUEST_TIMEOUT_SECONDS)
    coordinator = RefreshCoordinator(UpstreamRefreshClient(config, http_client, clock=clock))
    return AuthComponents(
        config=config,
        http_client=http_client,
        coordinator=coordinator,
        session_service=SessionService(config, coordinator, clock=clock),
        oauth_service=OAuthService(config, http_client, clock=clock),
    )


def get_components(request: Request) -> AuthComponents:
    return request.app.state.auth


def get_config(components: AuthComponents = Depends(get_components)) -> AuthConfig:
    return components.config


def get_session_service(components: AuthComponents = Depends(get_components)) -> SessionService:
    return components.session_service


def get_oauth_service(components: AuthComponents = Depends(get_components)) -> OAuthService:
    return components.oauth_service


async def require_csrf(request: Request, config: AuthConfig = Depends(get_config)) -> None:
    """
    Double-submit CSRF validation for state-changing requests.

    The token from ``GET /csrf`` must be echoed back either in the CSRF
    header or, for HTML form posts, in the ``csrfToken`` field.
    """
    if request.method.upper() in {"GET", "HEAD", "OPTIONS"}:
        return

    csrf_cookie = request.cookies.get(config.CSRF_COOKIE_NAME)
    if not csrf_cookie:
        raise HTTPException(status_code=403, detail="Missing CSRF cookie")

    provided = request.headers.get(config.CSRF_HEADER_NAME)
    if not provided and request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        field = form.get("csrfToken")
        provided = field if isinstance(field, str) else None

    if not provided:
        raise HTTPException(status_code=403, detail="Missing CSRF token")
    if not secure_compare(csrf_cookie, provided):
        raise HTTPException(status_code=403, detail="Invalid CSRF token")


def get_session_token(request: Request, config: AuthConfig = Depends(get_config)) -> SessionToken | None:
    """Decode the session cookie; a missing or tampered cookie means no session."""
    value = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not value:
        return None
    try:
        return decode_session(value, config)
    except AuthException:
        return None


def set_cookie(
    response: Response,
    config: AuthConfig,
    key: str,
    value: str,
    max_age: int | None = None,
    http_only: bool | None = None,
) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=config.COOKIE_HTTP_ONLY if http_only is None else http_only,
        secure=config.COOKIE_SECURE,
        samesite=config.COOKIE_SAMESITE,
        domain=config.COOKIE_DOMAIN,
    )


def delete_cookie(response: Response, config: AuthConfig, key: str) -> None:
    response.delete_cookie(key, domain=config.COOKIE_DOMAIN)
