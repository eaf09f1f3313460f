"""Tracks whether a model request is in flight."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from ..models import StreamingState

logger = logging.getLogger(__name__)

StatusListener = Callable[[StreamingState], None]


class SessionStatus:
    """Owner of the session's :class:`StreamingState`.

    The state can only be changed through :meth:`responding`, which
    guarantees the return to ``IDLE`` however the wrapped block exits.
    """

    def __init__(self) -> None:
        self._state = StreamingState.IDLE
        self._listeners: list[StatusListener] = []

    @property
    def state(self) -> StreamingState:
        return self._state

    @property
    def is_responding(self) -> bool:
        return self._state is StreamingState.RESPONDING

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    @asynccontextmanager
    async def responding(self) -> AsyncIterator[None]:
        self._set(StreamingState.RESPONDING)
        try:
            yield
        finally:
            self._set(StreamingState.IDLE)

    def _set(self, state: StreamingState) -> None:
        if state is self._state:
            return
        self._state = state
        logger.debug("Streaming state -> %s", state.value)
        for listener in list(self._listeners):
            listener(state)
