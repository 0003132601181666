"""Deduplication of concurrent refresh-token rotations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from auth.exceptions import NetworkFailure
from auth.interfaces.refresh_client import RefreshClient
from auth.tokens import SessionToken

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Ensures one upstream exchange per refresh credential at a time.

    Refresh tokens are single-use: a second concurrent exchange of the same
    credential would invalidate the first. Callers presenting the same lock
    key share a single task and therefore the same resulting token.

    The registry lives on the instance, is process-local and is only touched
    between suspension points, so lookup and insert are atomic under asyncio.
    """

    def __init__(self, client: RefreshClient) -> None:
        self._client = client
        self._in_flight: dict[str, asyncio.Task[SessionToken]] = {}

    @staticmethod
    def lock_key(token: SessionToken) -> str | None:
        if not token.refresh_token:
            return None
        # Per refresh token, not per subject: one user may hold several sessions.
        if token.subject_id:
            return f"{token.subject_id}:{token.refresh_token}"
        return token.refresh_token

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_refreshing(self, token: SessionToken) -> bool:
        key = self.lock_key(token)
        return key is not None and key in self._in_flight

    async def refresh(self, token: SessionToken) -> SessionToken:
        if token.is_terminal:
            return token
        key = self.lock_key(token)
        if key is None:
            logger.info("No refresh token for subject %s; marking session failed", token.subject_id)
            return token.with_error()

        task = self._in_flight.get(key)
        if task is not None:
            logger.debug("Joining in-flight refresh for subject %s", token.subject_id)
        else:
            task = asyncio.ensure_future(self._rotate(token))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))

        # A cancelled caller must not cancel the rotation other callers await.
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[SessionToken]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _rotate(self, token: SessionToken) -> SessionToken:
        logger.info("Refreshing access token for subject %s", token.subject_id)
        try:
            refreshed = await self._client.refresh_access_token(token)
        except NetworkFailure as exc:
            logger.warning("Token refresh failed (%s) for subject %s: %s", exc.kind, token.subject_id, exc.message)
            refreshed = token.with_error()

        # The exchange response carries no identity; keep the original subject.
        if token.subject_id is not None:
            refreshed = replace(refreshed, subject_id=token.subject_id)

        if refreshed.is_terminal:
            logger.info("Session for subject %s is now in terminal error state", token.subject_id)
        else:
            logger.info("Access token refreshed for subject %s", token.subject_id)
        return refreshed

    def clear(self) -> None:
        """Drop all registry entries, cancelling anything still pending."""
        for task in list(self._in_flight.values()):
            task.cancel()
        self._in_flight.clear()
