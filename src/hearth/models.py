"""Data model shared by the session controller and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EntryKind(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    INFO = "info"
    ERROR = "error"


class StreamingState(Enum):
    IDLE = "idle"
    RESPONDING = "responding"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    kind: EntryKind
    text: str
    created_at: datetime = Field(default_factory=_utcnow)


@dataclass
class SessionConfig:
    """Per-session switches owned by the session controller."""

    selected_model: str | None = None
    autopilot: bool = False


class EnrichedPrompt(BaseModel):
    """A prompt after file-reference enrichment. Never persisted."""

    prompt: str
    file_name: str | None = None
    path: str | None = None
    truncated: bool = False
    content_chars: int = 0

    @property
    def needs_file_access(self) -> bool:
        return self.path is not None
