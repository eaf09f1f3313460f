"""In-memory conversation history for a single session."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from ..models import EntryKind, HistoryEntry

logger = logging.getLogger(__name__)

HistoryListener = Callable[[list[HistoryEntry]], None]


class HistoryStore:
    """Append-only log of history entries.

    Entries are never mutated. The only destructive operations replace the
    whole log (``clear`` and ``load``). Listeners are called synchronously
    with a snapshot after every change.
    """

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._next_id = 0
        self._listeners: list[HistoryListener] = []

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def add_listener(self, listener: HistoryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: HistoryListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def append(self, kind: EntryKind, text: str) -> HistoryEntry:
        entry = HistoryEntry(id=self._next_id, kind=kind, text=text)
        self._next_id += 1
        self._entries.append(entry)
        logger.debug("history += %s #%d (%d chars)", kind.value, entry.id, len(text))
        self._notify()
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._next_id = 0
        self._notify()

    def load(self, entries: Iterable[HistoryEntry]) -> None:
        """Replace the whole log, e.g. when resuming a saved session."""
        self._entries = list(entries)
        self._next_id = max((e.id for e in self._entries), default=-1) + 1
        self._notify()

    def user_texts(self) -> list[str]:
        """User-authored texts, oldest first."""
        return [e.text for e in self._entries if e.kind is EntryKind.USER]

    def _notify(self) -> None:
        snapshot = list(self._entries)
        for listener in list(self._listeners):
            listener(snapshot)
