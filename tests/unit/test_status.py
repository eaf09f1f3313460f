from __future__ import annotations

import pytest

from hearth.models import StreamingState
from hearth.services.status import SessionStatus


@pytest.mark.asyncio
async def test_responding_brackets_block() -> None:
    status = SessionStatus()
    seen: list[StreamingState] = []
    status.add_listener(seen.append)

    async with status.responding():
        assert status.state is StreamingState.RESPONDING
        assert status.is_responding

    assert status.state is StreamingState.IDLE
    assert seen == [StreamingState.RESPONDING, StreamingState.IDLE]


@pytest.mark.asyncio
async def test_idle_restored_on_exception() -> None:
    status = SessionStatus()
    with pytest.raises(RuntimeError):
        async with status.responding():
            raise RuntimeError("boom")
    assert status.state is StreamingState.IDLE
