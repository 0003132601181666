"""Auth API routes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from auth.config import AuthConfig
from auth.dependencies import (
    delete_cookie,
    get_config,
    get_oauth_service,
    get_session_service,
    get_session_token,
    require_csrf,
    set_cookie,
)
from auth.exceptions import AuthException
from auth.projection import project_session
from auth.redirects import resolve_redirect
from auth.schemas import CsrfResponse, SignOutResponse
from auth.security import encode_session, generate_csrf_token, secure_compare
from auth.services.oauth_service import PROVIDER_ID, OAuthService
from auth.services.session_service import SessionService
from auth.tokens import SessionToken

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"
PKCE_VERIFIER_COOKIE = "pkce_code_verifier"
CALLBACK_URL_COOKIE = "callback_url"
_FLOW_COOKIES = (OAUTH_STATE_COOKIE, PKCE_VERIFIER_COOKIE, CALLBACK_URL_COOKIE)


def _set_session_cookie(response: Response, config: AuthConfig, token: SessionToken) -> datetime:
    value, expires = encode_session(token, config)
    set_cookie(response, config, config.SESSION_COOKIE_NAME, value, max_age=config.SESSION_MAX_AGE_SECONDS)
    return expires


def _clear_flow_cookies(response: Response, config: AuthConfig) -> None:
    for key in _FLOW_COOKIES:
        delete_cookie(response, config, key)


@router.get("/csrf", response_model=CsrfResponse)
async def csrf(
    request: Request,
    response: Response,
    config: AuthConfig = Depends(get_config),
) -> CsrfResponse:
    csrf_token = request.cookies.get(config.CSRF_COOKIE_NAME) or generate_csrf_token()
    set_cookie(response, config, config.CSRF_COOKIE_NAME, csrf_token, max_age=config.SESSION_MAX_AGE_SECONDS)
    return CsrfResponse(csrfToken=csrf_token)


@router.get("/session")
async def session(
    response: Response,
    token: SessionToken | None = Depends(get_session_token),
    session_service: SessionService = Depends(get_session_service),
    config: AuthConfig = Depends(get_config),
) -> dict[str, Any]:
    """Current session, rotating the upstream credentials when they are due.

    Returns an empty object when there is no valid session cookie or the
    cookie carries no subject.
    """
    if token is None or not token.subject_id:
        return {}

    resolved = await session_service.resolve(token)
    expires = _set_session_cookie(response, config, resolved)
    return project_session(resolved, expires).model_dump(exclude_none=True)


@router.post("/signin/{provider}")
async def signin(
    provider: str,
    callback_url: str | None = Form(default=None, alias="callbackUrl"),
    _: None = Depends(require_csrf),
    oauth_service: OAuthService = Depends(get_oauth_service),
    config: AuthConfig = Depends(get_config),
) -> RedirectResponse:
    if provider != PROVIDER_ID:
        raise HTTPException(status_code=404, detail="Unknown provider")
    try:
        result = oauth_service.generate_auth_url()
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    destination = resolve_redirect(callback_url, config.AUTH_URL, config.APP_URL)
    redirect_response = RedirectResponse(url=result["auth_url"], status_code=status.HTTP_302_FOUND)
    max_age = config.OAUTH_FLOW_MAX_AGE_SECONDS
    set_cookie(redirect_response, config, OAUTH_STATE_COOKIE, result["state"], max_age=max_age)
    set_cookie(redirect_response, config, PKCE_VERIFIER_COOKIE, result["code_verifier"], max_age=max_age)
    set_cookie(redirect_response, config, CALLBACK_URL_COOKIE, destination, max_age=max_age)
    return redirect_response


@router.get("/callback/{provider}")
async def callback(
    provider: str,
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth_service: OAuthService = Depends(get_oauth_service),
    config: AuthConfig = Depends(get_config),
) -> RedirectResponse:
    try:
        if provider != PROVIDER_ID:
            raise AuthException("Unknown provider", status_code=404)
        if error:
            raise AuthException("Sign-in was cancelled or denied", status_code=400)
        if not code or not state:
            raise AuthException("Missing authorization response", status_code=400)

        oauth_state = request.cookies.get(OAUTH_STATE_COOKIE)
        if not oauth_state:
            raise AuthException("Missing OAuth state. Please retry.", status_code=400)
        if not secure_compare(oauth_state, state):
            raise AuthException("Invalid OAuth state.", status_code=400)
        code_verifier = request.cookies.get(PKCE_VERIFIER_COOKIE)
        if not code_verifier:
            raise AuthException("Missing PKCE verifier. Please retry.", status_code=400)

        token = await oauth_service.handle_callback(code, code_verifier)

        destination = resolve_redirect(request.cookies.get(CALLBACK_URL_COOKIE), config.AUTH_URL, config.APP_URL)
        redirect_response = RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)
        _set_session_cookie(redirect_response, config, token)
        _clear_flow_cookies(redirect_response, config)
        return redirect_response
    except AuthException as exc:
        logger.info("Sign-in callback failed: %s", exc.message)
        redirect_url = f"{config.APP_URL}?auth=error&message={quote(exc.message)}"
        error_response = RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)
        _clear_flow_cookies(error_response, config)
        return error_response


@router.post("/signout", response_model=SignOutResponse)
async def signout(
    response: Response,
    callback_url: str | None = Form(default=None, alias="callbackUrl"),
    _: None = Depends(require_csrf),
    token: SessionToken | None = Depends(get_session_token),
    config: AuthConfig = Depends(get_config),
) -> SignOutResponse:
    delete_cookie(response, config, config.SESSION_COOKIE_NAME)
    if token is not None:
        logger.info("Signed out subject %s", token.subject_id)
    return SignOutResponse(url=resolve_redirect(callback_url, config.AUTH_URL, config.APP_URL))
