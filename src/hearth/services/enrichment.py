"""File-reference enrichment of user prompts.

A prompt that mentions something shaped like a file name (``notes.txt``,
``app.config.py``) is rewritten so the model receives the file's content
alongside the request. Only the first such token is used. The file is looked
up by base name anywhere below the working directory, and its content is cut
to fit a fixed character budget derived from the model's context size.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path

from ..config import ContextConfig
from ..models import EnrichedPrompt

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r"[\w.-]+\.\w+")

CONTENT_PLACEHOLDER = "{CONTENT}"


def detect_file_reference(prompt: str) -> str | None:
    """Return the first file-name-like token in ``prompt``, if any."""
    match = _FILENAME_RE.search(prompt)
    return match.group(0) if match else None


def found_template(prompt: str, path: str) -> str:
    return (
        f'The user wants me to do the following: "{prompt}". '
        f'I have found the relevant file at "{path}", and its content is:\n'
        f"```\n{CONTENT_PLACEHOLDER}\n```\n"
        "Please proceed."
    )


def not_found_prompt(file_name: str) -> str:
    return f'The user mentioned "{file_name}", but I could not find it. Inform the user the file was not found.'


def content_budget(template: str, max_chars: int) -> int:
    """Characters left for file content once the template itself is paid for."""
    overhead = len(template) - len(CONTENT_PLACEHOLDER)
    return max(0, max_chars - overhead)


def fill_template(template: str, content: str) -> str:
    # Split on the last placeholder: the user's prompt is embedded earlier
    # in the template and may contain the placeholder text itself.
    head, _, tail = template.rpartition(CONTENT_PLACEHOLDER)
    return head + content + tail


async def find_file(
    root: Path,
    name: str,
    *,
    ignore_dirs: frozenset[str] | set[str] = frozenset(),
    max_depth: int = 32,
    cancel_event: asyncio.Event | None = None,
) -> Path | None:
    """Depth-first search below ``root`` for a non-directory named ``name``.

    Entries are visited in the order the filesystem lists them and the first
    hit wins, so with duplicate names the result depends on that order.
    Symlinked directories are not followed. Control returns to the event
    loop before each directory is listed.
    """

    async def _search(directory: Path, depth: int) -> Path | None:
        if cancel_event is not None and cancel_event.is_set():
            raise asyncio.CancelledError
        await asyncio.sleep(0)
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            return None

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if is_dir:
                if entry.name in ignore_dirs or depth >= max_depth:
                    continue
                found = await _search(Path(entry.path), depth + 1)
                if found is not None:
                    return found
            elif entry.name == name:
                return Path(entry.path)
        return None

    return await _search(root, 0)


def _read_text(path: Path, limit: int) -> str:
    """Read at most ``limit`` characters of ``path``."""
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read(limit)


class ContextEnricher:
    """Turns a raw prompt into an :class:`EnrichedPrompt`."""

    def __init__(self, config: ContextConfig, root: Path | None = None) -> None:
        self.config = config
        self.root = root or Path.cwd()

    async def enrich(self, prompt: str, cancel_event: asyncio.Event | None = None) -> EnrichedPrompt:
        file_name = detect_file_reference(prompt)
        if file_name is None:
            return EnrichedPrompt(prompt=prompt)

        path = await find_file(
            self.root,
            file_name,
            ignore_dirs=self.config.ignore_dirs,
            max_depth=self.config.max_search_depth,
            cancel_event=cancel_event,
        )
        if path is None:
            logger.info("File reference %r not found under %s", file_name, self.root)
            return EnrichedPrompt(prompt=not_found_prompt(file_name), file_name=file_name)

        template = found_template(prompt, str(path))
        budget = content_budget(template, self.config.max_chars)
        try:
            # One extra character tells us whether the file was cut.
            content = await asyncio.to_thread(_read_text, path, budget + 1)
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            return EnrichedPrompt(prompt=not_found_prompt(file_name), file_name=file_name)

        truncated = len(content) > budget
        if truncated:
            content = content[:budget]
        return EnrichedPrompt(
            prompt=fill_template(template, content),
            file_name=file_name,
            path=str(path),
            truncated=truncated,
            content_chars=len(content),
        )
