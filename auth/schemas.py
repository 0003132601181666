"""Auth request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SessionUser(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    name: str | None = None
    email: str | None = None


class SessionResponse(BaseModel):
    """Client-visible session. Deliberately has no credential fields."""

    model_config = ConfigDict(extra="forbid")

    user: SessionUser
    expires: str
    error: str | None = None


class CsrfResponse(BaseModel):
    csrfToken: str


class SignOutResponse(BaseModel):
    url: str


class HealthResponse(BaseModel):
    status: str
