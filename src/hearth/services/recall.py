"""Input recall: live user prompts merged with the persisted prompt log."""

from __future__ import annotations

from typing import AsyncGenerator, Callable, Iterable, Sequence

from prompt_toolkit.history import History


def dedupe_recall(live_newest_first: Sequence[str], persisted_newest_first: Iterable[str]) -> list[str]:
    """Merge two newest-first prompt lists into one oldest-first recall list.

    Only adjacent repeats are collapsed; a prompt that comes back later in
    the sequence is kept.
    """
    deduplicated: list[str] = []
    for text in [*live_newest_first, *persisted_newest_first]:
        if deduplicated and deduplicated[-1] == text:
            continue
        deduplicated.append(text)
    deduplicated.reverse()
    return deduplicated


def build_recall_list(user_texts_oldest_first: Sequence[str], prior_newest_first: Sequence[str]) -> list[str]:
    return dedupe_recall(list(reversed(user_texts_oldest_first)), prior_newest_first)


def load_persisted_prompts(history: History) -> list[str]:
    """Read a prompt_toolkit history backend, newest first."""
    return list(history.load_history_strings())


class RecallHistory(History):
    """prompt_toolkit history that serves the session's recall list.

    Lookups always reflect the current list, while new input is written
    through to ``persisted`` for future sessions.
    """

    def __init__(self, provider: Callable[[], list[str]], persisted: History | None = None) -> None:
        super().__init__()
        self._provider = provider
        self._persisted = persisted

    async def load(self) -> AsyncGenerator[str, None]:
        for item in reversed(self._provider()):
            yield item

    def load_history_strings(self) -> Iterable[str]:
        return list(reversed(self._provider()))

    def store_string(self, string: str) -> None:
        if self._persisted is not None:
            self._persisted.store_string(string)
