"""Refresh-token exchange against the identity provider's token endpoint."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from typing import Any

import httpx

from auth.config import AuthConfig
from auth.exceptions import (
    ConfigurationError,
    MissingRefreshToken,
    NetworkFailure,
    RefreshError,
    UpstreamRejected,
)
from auth.tokens import SessionToken

logger = logging.getLogger(__name__)


class UpstreamRefreshClient:
    def __init__(
        self,
        config: AuthConfig,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._http = http_client
        self._clock = clock

    async def refresh_access_token(self, token: SessionToken) -> SessionToken:
        try:
            payload = await self._exchange(token)
        except NetworkFailure:
            raise
        except RefreshError as exc:
            logger.warning(
                "Token refresh failed (%s) for subject %s: %s",
                exc.kind,
                token.subject_id,
                exc.message,
            )
            return token.with_error()

        return token.rotated(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=int(self._clock() + self._expires_in(payload)),
        )

    def _check_preconditions(self, token: SessionToken) -> None:
        if not self._config.is_provider_configured:
            raise ConfigurationError("Identity provider is not configured", status_code=500)
        if not token.refresh_token:
            raise MissingRefreshToken("Session has no refresh token")

    async def _exchange(self, token: SessionToken) -> dict[str, Any]:
        self._check_preconditions(token)

        data = {
            "grant_type": "refresh_token",
            "client_id": self._config.OIDC_CLIENT_ID,
            "client_secret": self._config.OIDC_CLIENT_SECRET,
            "refresh_token": token.refresh_token,
        }
        try:
            response = await self._http.post(
                self._config.token_endpoint,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._config.TOKEN_REQUEST_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"Token endpoint unreachable: {exc.__class__.__name__}") from exc

        if not response.is_success:
            raise UpstreamRejected(f"Token endpoint returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamRejected("Token endpoint returned a non-JSON body") from exc
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UpstreamRejected("Token endpoint response missing access token")
        return payload

    def _expires_in(self, payload: dict[str, Any]) -> float:
        try:
            expires_in = float(payload.get("expires_in"))
        except (TypeError, ValueError):
            return self._config.DEFAULT_TOKEN_LIFETIME_SECONDS
        if not math.isfinite(expires_in) or expires_in <= 0:
            return self._config.DEFAULT_TOKEN_LIFETIME_SECONDS
        return expires_in
