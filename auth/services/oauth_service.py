"""OIDC sign-in (authorization code + PKCE) against Keycloak."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from urllib.parse import urlencode

import httpx

from auth.config import AuthConfig
from auth.exceptions import AuthException
from auth.security import code_challenge, generate_code_verifier, generate_state
from auth.tokens import SessionToken

logger = logging.getLogger(__name__)

PROVIDER_ID = "keycloak"


class OAuthService:
    def __init__(
        self,
        config: AuthConfig,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._http = http_client
        self._clock = clock

    @property
    def redirect_uri(self) -> str:
        return f"{self._config.AUTH_URL.rstrip('/')}/api/auth/callback/{PROVIDER_ID}"

    def generate_auth_url(self) -> dict[str, str]:
        if not self._config.is_provider_configured:
            raise AuthException("Keycloak OAuth not configured", status_code=500)

        state = generate_state()
        verifier = generate_code_verifier()
        query = urlencode(
            {
                "client_id": self._config.OIDC_CLIENT_ID,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": self._config.OIDC_SCOPE,
                "state": state,
                "code_challenge": code_challenge(verifier),
                "code_challenge_method": "S256",
            }
        )
        return {
            "auth_url": f"{self._config.authorization_endpoint}?{query}",
            "state": state,
            "code_verifier": verifier,
        }

    async def handle_callback(self, code: str, code_verifier: str) -> SessionToken:
        """Exchange an authorization code and mint the initial session token."""
        if not self._config.is_provider_configured:
            raise AuthException("Keycloak OAuth not configured", status_code=500)

        token_payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "client_id": self._config.OIDC_CLIENT_ID,
            "client_secret": self._config.OIDC_CLIENT_SECRET,
            "code_verifier": code_verifier,
        }
        timeout = self._config.TOKEN_REQUEST_TIMEOUT_SECONDS

        try:
            token_response = await self._http.post(
                self._config.token_endpoint,
                data=token_payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=timeout,
            )
            if token_response.status_code != 200:
                logger.warning("Authorization code exchange rejected: HTTP %s", token_response.status_code)
                raise AuthException("Failed to exchange authorization code", status_code=400)
            token_data = token_response.json()

            access_token = token_data.get("access_token")
            if not access_token:
                raise AuthException("Token response missing access token", status_code=400)

            userinfo_response = await self._http.get(
                self._config.userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=timeout,
            )
            if userinfo_response.status_code != 200:
                raise AuthException("Failed to fetch user info", status_code=400)
            userinfo = userinfo_response.json()
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable during sign-in: %s", exc.__class__.__name__)
            raise AuthException("Identity provider unavailable", status_code=502) from exc
        except ValueError as exc:
            raise AuthException("Identity provider returned an invalid response", status_code=502) from exc

        subject = userinfo.get("sub")
        if not subject:
            raise AuthException("User info missing subject", status_code=400)

        try:
            expires_in = int(token_data.get("expires_in"))
        except (TypeError, ValueError):
            expires_in = self._config.DEFAULT_TOKEN_LIFETIME_SECONDS

        logger.info("Signed in subject %s", subject)
        return SessionToken(
            access_token=access_token,
            refresh_token=token_data.get("refresh_token"),
            expires_at=int(self._clock() + expires_in),
            subject_id=str(subject),
            name=userinfo.get("name") or userinfo.get("preferred_username"),
            email=userinfo.get("email"),
        )
