"""Sends one prompt to the model and records the outcome in history."""

from __future__ import annotations

import logging

from ..errors import HearthError
from ..models import EntryKind, SessionConfig
from .ai_service import AIService
from .history import HistoryStore
from .status import SessionStatus

logger = logging.getLogger(__name__)

NO_MODEL_MESSAGE = "Error: No local model is selected."


class ModelDispatcher:
    """Request envelope around :meth:`AIService.complete`.

    Failures never escape: they become error entries in the history store.
    The streaming state is ``RESPONDING`` only while the request is out.
    """

    def __init__(
        self,
        ai_service: AIService,
        history: HistoryStore,
        status: SessionStatus,
        session: SessionConfig,
    ) -> None:
        self.ai_service = ai_service
        self.history = history
        self.status = status
        self.session = session

    async def dispatch(self, prompt_to_send: str, original_prompt: str) -> bool:
        """Returns True when an assistant reply was recorded."""
        model = self.session.selected_model
        if not model:
            self.history.append(EntryKind.ERROR, NO_MODEL_MESSAGE)
            return False

        last = self.history.last()
        if last is None or last.text != original_prompt:
            self.history.append(EntryKind.USER, original_prompt)

        async with self.status.responding():
            try:
                reply = await self.ai_service.complete(model, prompt_to_send)
            except HearthError as e:
                logger.warning("Model request failed: %s", e)
                self.history.append(EntryKind.ERROR, f"Error connecting to local model: {e}")
                return False
            except Exception as e:
                logger.exception("Unexpected error during model request")
                self.history.append(EntryKind.ERROR, f"Error connecting to local model: {e}")
                return False

        self.history.append(EntryKind.ASSISTANT, reply)
        return True
