"""Tests for the model dispatch envelope."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from hearth.errors import BackendError, RequestTimeoutError, ResponseFormatError
from hearth.models import EntryKind, SessionConfig, StreamingState
from hearth.services.dispatch import NO_MODEL_MESSAGE, ModelDispatcher
from hearth.services.history import HistoryStore
from hearth.services.status import SessionStatus


def _dispatcher(model: str | None = "qwen", **complete_kwargs: object) -> ModelDispatcher:
    ai_service = MagicMock()
    ai_service.complete = AsyncMock(**complete_kwargs)
    return ModelDispatcher(ai_service, HistoryStore(), SessionStatus(), SessionConfig(selected_model=model))


def _kinds(dispatcher: ModelDispatcher) -> list[EntryKind]:
    return [e.kind for e in dispatcher.history.entries]


@pytest.mark.asyncio
async def test_success_records_user_then_assistant() -> None:
    d = _dispatcher(return_value="Hi!")
    assert await d.dispatch("enriched hello", "hello") is True

    d.ai_service.complete.assert_awaited_once_with("qwen", "enriched hello")
    assert [(e.kind, e.text) for e in d.history.entries] == [
        (EntryKind.USER, "hello"),
        (EntryKind.ASSISTANT, "Hi!"),
    ]
    assert d.status.state is StreamingState.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize("model", [None, ""])
async def test_no_model_fails_fast(model: str | None) -> None:
    d = _dispatcher(model=model, return_value="never")
    assert await d.dispatch("hello", "hello") is False

    d.ai_service.complete.assert_not_called()
    assert [(e.kind, e.text) for e in d.history.entries] == [(EntryKind.ERROR, NO_MODEL_MESSAGE)]
    assert d.status.state is StreamingState.IDLE


@pytest.mark.asyncio
async def test_user_line_not_repeated_when_already_last() -> None:
    d = _dispatcher(return_value="ok")
    d.history.append(EntryKind.USER, "hello")
    await d.dispatch("enriched", "hello")
    assert _kinds(d) == [EntryKind.USER, EntryKind.ASSISTANT]


@pytest.mark.asyncio
async def test_responding_while_request_is_out() -> None:
    d = _dispatcher()
    states: list[StreamingState] = []

    async def _complete(model: str, prompt: str) -> str:
        states.append(d.status.state)
        return "done"

    d.ai_service.complete.side_effect = _complete
    await d.dispatch("p", "p")
    assert states == [StreamingState.RESPONDING]
    assert d.status.state is StreamingState.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        BackendError("API request failed with status 500: boom", 500),
        RequestTimeoutError(600),
        ResponseFormatError("Response contained no choices"),
        RuntimeError("unexpected"),
    ],
)
async def test_failures_become_error_entries(error: Exception) -> None:
    d = _dispatcher(side_effect=error)
    assert await d.dispatch("p", "p") is False

    last = d.history.last()
    assert last.kind is EntryKind.ERROR
    assert last.text == f"Error connecting to local model: {error}"
    assert d.status.state is StreamingState.IDLE
