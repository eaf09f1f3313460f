"""Session controller: the state machine behind an interactive chat session."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import AppConfig
from .errors import BackendError
from .models import EntryKind, HistoryEntry, SessionConfig
from .services.ai_service import AIService
from .services.approvals import ApprovalGate, ApprovalOutcome
from .services.dispatch import ModelDispatcher
from .services.enrichment import ContextEnricher
from .services.history import HistoryStore
from .services.recall import build_recall_list
from .services.status import SessionStatus

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A request is already in progress."
CANCELLED_MESSAGE = "Action cancelled."


class SessionController:
    """Owns the session's mutable state and the transitions between states.

    Other components (renderer, input loop) read ``status``, ``approvals``,
    ``session`` and ``history`` but change them only through this class.
    """

    def __init__(
        self,
        config: AppConfig,
        ai_service: AIService | None = None,
        root: Path | None = None,
    ) -> None:
        self.config = config
        self.session = SessionConfig(
            selected_model=config.backend.model,
            autopilot=config.session.autopilot,
        )
        self.history = HistoryStore()
        self.status = SessionStatus()
        self.approvals = ApprovalGate()
        self.ai_service = ai_service or AIService(config.backend)
        self.enricher = ContextEnricher(config.context, root)
        self.dispatcher = ModelDispatcher(self.ai_service, self.history, self.status, self.session)
        self.models: list[str] = []
        self.recall: list[str] = []
        self._prior_prompts: list[str] = []
        self._enriching = False
        self._cancel_event: asyncio.Event | None = None
        self.history.add_listener(self._on_history_change)

    @property
    def is_busy(self) -> bool:
        return self._enriching or self.status.is_responding or self.approvals.is_pending

    @property
    def input_active(self) -> bool:
        return not self.is_busy

    async def start(self) -> None:
        """Fetch the available models and pick one if none is pinned."""
        base_url = self.config.backend.base_url
        try:
            self.models = await self.ai_service.list_models()
        except BackendError as e:
            logger.warning("Model listing failed: %s", e)
            self.models = []
            self.history.append(
                EntryKind.ERROR,
                f"Could not connect to the local model server at {base_url}. Please ensure the server is running.",
            )
            return

        if not self.models:
            self.history.append(EntryKind.ERROR, f"No models are available at {base_url}. Load a model and try again.")
            return
        if not self.session.selected_model:
            self.session.selected_model = self.models[0]
        logger.info("Using model %s (%d available)", self.session.selected_model, len(self.models))

    async def submit(self, text: str) -> None:
        if not text.strip():
            return
        if self.is_busy:
            self.history.append(EntryKind.INFO, BUSY_MESSAGE)
            return

        self._enriching = True
        self._cancel_event = asyncio.Event()
        try:
            enriched = await self.enricher.enrich(text, cancel_event=self._cancel_event)
        except asyncio.CancelledError:
            if not self._cancel_event.is_set():
                raise
            self.history.append(EntryKind.INFO, CANCELLED_MESSAGE)
            return
        finally:
            self._enriching = False
            self._cancel_event = None

        if enriched.truncated:
            self.history.append(EntryKind.INFO, f'Warning: The file "{enriched.file_name}" was truncated.')

        if not enriched.needs_file_access:
            await self.dispatcher.dispatch(enriched.prompt, text)
            return

        async def proceed() -> None:
            await self.dispatcher.dispatch(enriched.prompt, text)

        if self.session.autopilot:
            self.history.append(EntryKind.INFO, f"Autopilot ON. Reading file: {enriched.path}")
            await proceed()
        else:
            self.approvals.request(
                f'I need to access the file system to read "{enriched.file_name}". Proceed? (Y/n)',
                on_approve=proceed,
                on_deny=self._record_cancelled,
            )

    async def answer_approval(self, text: str) -> ApprovalOutcome:
        return await self.approvals.handle_input(text)

    def cancel(self) -> None:
        """Abort an enrichment walk that is still running."""
        if self._cancel_event is not None:
            self._cancel_event.set()

    def toggle_autopilot(self) -> bool:
        self.session.autopilot = not self.session.autopilot
        state = "ON" if self.session.autopilot else "OFF"
        self.history.append(EntryKind.INFO, f"Autopilot mode is now {state}.")
        return self.session.autopilot

    def select_model(self, model: str) -> None:
        self.session.selected_model = model
        if self.models and model not in self.models:
            self.history.append(EntryKind.INFO, f"Model {model} is not in the server's list; using it anyway.")
        self.history.append(EntryKind.INFO, f"Switched to model: {model}")

    def clear_history(self) -> None:
        self.history.clear()

    def set_prior_prompts(self, newest_first: list[str]) -> None:
        """Install the prompts recorded by earlier sessions."""
        self._prior_prompts = list(newest_first)
        self._refresh_recall()

    def _record_cancelled(self) -> None:
        self.history.append(EntryKind.INFO, CANCELLED_MESSAGE)

    def _on_history_change(self, entries: list[HistoryEntry]) -> None:
        self._refresh_recall()

    def _refresh_recall(self) -> None:
        self.recall = build_recall_list(self.history.user_texts(), self._prior_prompts)
