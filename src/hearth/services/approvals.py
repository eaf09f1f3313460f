"""Single-slot approval gate for privileged actions."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Union

from ..errors import ApprovalPendingError

logger = logging.getLogger(__name__)

ApprovalAction = Callable[[], Union[Awaitable[None], None]]

MAX_MESSAGE_CHARS = 10_000

_YES = frozenset({"y", "yes", ""})
_NO = frozenset({"n", "no"})


@dataclass(frozen=True)
class ApprovalRequest:
    message: str
    on_approve: ApprovalAction
    on_deny: ApprovalAction


class ApprovalOutcome(Enum):
    APPROVED = "approved"
    DENIED = "denied"
    IGNORED = "ignored"


class ApprovalGate:
    """Holds at most one pending :class:`ApprovalRequest`.

    Resolving the request (either way) empties the slot before the chosen
    action runs, so the action is free to open a new request.
    """

    def __init__(self) -> None:
        self._pending: ApprovalRequest | None = None

    @property
    def pending(self) -> ApprovalRequest | None:
        return self._pending

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def request(self, message: str, on_approve: ApprovalAction, on_deny: ApprovalAction) -> ApprovalRequest:
        if self._pending is not None:
            raise ApprovalPendingError("Another approval is already waiting for an answer")
        self._pending = ApprovalRequest(
            message=(message or "")[:MAX_MESSAGE_CHARS],
            on_approve=on_approve,
            on_deny=on_deny,
        )
        logger.debug("Approval requested: %s", self._pending.message)
        return self._pending

    async def approve(self) -> bool:
        request = self._take()
        if request is None:
            return False
        await _run(request.on_approve)
        return True

    async def deny(self) -> bool:
        request = self._take()
        if request is None:
            return False
        await _run(request.on_deny)
        return True

    async def handle_input(self, text: str) -> ApprovalOutcome:
        """Route one line (or key) of user input to the pending request.

        ``y``/``yes`` or a bare Enter approve, ``n``/``no`` deny. Anything
        else, or any input while nothing is pending, is ignored.
        """
        if self._pending is None:
            return ApprovalOutcome.IGNORED
        answer = text.strip().lower()
        if answer in _YES:
            await self.approve()
            return ApprovalOutcome.APPROVED
        if answer in _NO:
            await self.deny()
            return ApprovalOutcome.DENIED
        return ApprovalOutcome.IGNORED

    def _take(self) -> ApprovalRequest | None:
        request, self._pending = self._pending, None
        return request


async def _run(action: ApprovalAction) -> None:
    result = action()
    if inspect.isawaitable(result):
        await result
