"""Press-twice-to-exit handling for control keys."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

CTRL_EXIT_PROMPT_DURATION_MS = 1000


@dataclass
class ExitPressState:
    pressed_once: bool = False
    timer_handle: asyncio.TimerHandle | None = None


class ExitConfirmation:
    """Two-stage debounce: the second press of a key within the window fires.

    Every key has its own :class:`ExitPressState`, so pressing Ctrl+C and then
    Ctrl+D counts as two first presses.
    """

    def __init__(
        self,
        on_confirm: Callable[[str], None],
        window_ms: int = CTRL_EXIT_PROMPT_DURATION_MS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._on_confirm = on_confirm
        self._window_s = window_ms / 1000
        self._loop = loop
        self._states: dict[str, ExitPressState] = {}

    def state(self, key: str) -> ExitPressState:
        return self._states.setdefault(key, ExitPressState())

    def pressed_once(self, key: str) -> bool:
        return self.state(key).pressed_once

    def press(self, key: str) -> bool:
        """Register one press of ``key``. Returns True when exit was confirmed."""
        state = self.state(key)
        if state.pressed_once:
            self._reset(state)
            logger.debug("Exit confirmed with %s", key)
            self._on_confirm(key)
            return True

        loop = self._loop or asyncio.get_running_loop()
        state.pressed_once = True
        state.timer_handle = loop.call_later(self._window_s, self._expire, key)
        return False

    def cancel_all(self) -> None:
        for state in self._states.values():
            self._reset(state)

    def _expire(self, key: str) -> None:
        state = self.state(key)
        state.pressed_once = False
        state.timer_handle = None

    @staticmethod
    def _reset(state: ExitPressState) -> None:
        if state.timer_handle is not None:
            state.timer_handle.cancel()
        state.pressed_once = False
        state.timer_handle = None
