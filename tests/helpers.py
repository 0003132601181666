"""Shared fixtures for the session gateway tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx

from auth.config import AuthConfig

NOW = 1_700_000_000.0
ISSUER = "https://idp.example.com/realms/app"
TOKEN_URL = f"{ISSUER}/protocol/openid-connect/token"
USERINFO_URL = f"{ISSUER}/protocol/openid-connect/userinfo"


def make_config(**overrides) -> AuthConfig:
    values = {
        "OIDC_ISSUER": ISSUER,
        "OIDC_CLIENT_ID": "web",
        "OIDC_CLIENT_SECRET": "s3cret",
        "AUTH_SECRET": "test-secret-with-enough-entropy",
        "APP_URL": "https://app.example.com",
        "AUTH_URL": "https://auth.example.com",
        "COOKIE_SECURE": False,
        "COOKIE_DOMAIN": None,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return AuthConfig(**values)


def fixed_clock(now: float = NOW) -> Callable[[], float]:
    return lambda: now


def form_body(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], object]) -> None:
        self.requests: list[httpx.Request] = []

        async def _record(request: httpx.Request):
            self.requests.append(request)
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        super().__init__(_record)


def json_response(status_code: int, payload: object) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )
