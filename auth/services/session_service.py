"""Per-request session resolution."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from auth.config import AuthConfig
from auth.services.refresh_coordinator import RefreshCoordinator
from auth.tokens import SessionState, SessionToken, session_state

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(
        self,
        config: AuthConfig,
        coordinator: RefreshCoordinator,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._coordinator = coordinator
        self._clock = clock

    async def resolve(self, token: SessionToken) -> SessionToken:
        """Return the token to serve for this request, rotating it if due.

        At most one rotation is attempted per call, and none once the token
        carries the error flag.
        """
        state = session_state(
            token,
            now=self._clock(),
            window=self._config.REFRESH_WINDOW_SECONDS,
            refreshing=self._coordinator.is_refreshing(token),
        )
        logger.debug("Session for subject %s is %s", token.subject_id, state.value)
        if state in (SessionState.FRESH, SessionState.ERROR):
            return token
        return await self._coordinator.refresh(token)
