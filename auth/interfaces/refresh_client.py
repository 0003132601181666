"""Refresh client interface used by the coordinator."""

from __future__ import annotations

from typing import Protocol

from auth.tokens import SessionToken


class RefreshClient(Protocol):
    async def refresh_access_token(self, token: SessionToken) -> SessionToken:
        """Exchange the token's refresh credential.

        Returns an error-flagged token for configuration, missing-credential
        and rejection failures; raises ``NetworkFailure`` on transport errors.
        """
        ...
