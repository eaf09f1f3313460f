"""Tests for file-reference enrichment."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from hearth.config import ContextConfig
from hearth.services import enrichment
from hearth.services.enrichment import (
    CONTENT_PLACEHOLDER,
    ContextEnricher,
    content_budget,
    detect_file_reference,
    fill_template,
    find_file,
    found_template,
    not_found_prompt,
)


@pytest.mark.parametrize(
    "prompt,expected",
    [
        ("explain main.py please", "main.py"),
        ("compare a.txt with b.txt", "a.txt"),
        ("look at app.config.json", "app.config.json"),
        ("what is in my-notes_v2.md?", "my-notes_v2.md"),
        ("no files here", None),
        ("ends with a period.", None),
    ],
)
def test_detect_file_reference(prompt: str, expected: str | None) -> None:
    assert detect_file_reference(prompt) == expected


class TestTemplate:
    def test_budget_accounts_for_template_overhead(self) -> None:
        template = found_template("do it", "/tmp/x.txt")
        overhead = len(template) - len(CONTENT_PLACEHOLDER)
        assert content_budget(template, 16384) == 16384 - overhead

    def test_budget_never_negative(self) -> None:
        assert content_budget(found_template("x" * 100, "/p"), 10) == 0

    def test_fill_ignores_placeholder_in_prompt(self) -> None:
        template = found_template("replace {CONTENT} here", "/p/a.txt")
        filled = fill_template(template, "BODY")
        assert 'replace {CONTENT} here' in filled
        assert "```\nBODY\n```" in filled


class TestFindFile:
    @pytest.mark.asyncio
    async def test_finds_nested_file(self, tmp_path: Path) -> None:
        target = tmp_path / "src" / "pkg" / "notes.txt"
        target.parent.mkdir(parents=True)
        target.write_text("hi")
        assert await find_file(tmp_path, "notes.txt") == target

    @pytest.mark.asyncio
    async def test_skips_ignored_directories(self, tmp_path: Path) -> None:
        hidden = tmp_path / "node_modules" / "lib.js"
        hidden.parent.mkdir()
        hidden.write_text("x")
        assert await find_file(tmp_path, "lib.js", ignore_dirs={"node_modules"}) is None
        assert await find_file(tmp_path, "lib.js") == hidden

    @pytest.mark.asyncio
    async def test_directory_with_matching_name_is_not_a_match(self, tmp_path: Path) -> None:
        (tmp_path / "data.d").mkdir()
        assert await find_file(tmp_path, "data.d") is None

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        (tmp_path / "other.txt").write_text("x")
        assert await find_file(tmp_path, "wanted.txt") is None

    @pytest.mark.asyncio
    async def test_depth_limit(self, tmp_path: Path) -> None:
        deep = tmp_path / "a" / "b" / "c" / "deep.txt"
        deep.parent.mkdir(parents=True)
        deep.write_text("x")
        assert await find_file(tmp_path, "deep.txt", max_depth=2) is None
        assert await find_file(tmp_path, "deep.txt", max_depth=3) == deep

    @pytest.mark.asyncio
    async def test_cancel_event_stops_search(self, tmp_path: Path) -> None:
        (tmp_path / "f.txt").write_text("x")
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(asyncio.CancelledError):
            await find_file(tmp_path, "f.txt", cancel_event=cancel)


class TestContextEnricher:
    @pytest.mark.asyncio
    async def test_prompt_without_file_passes_through(self, tmp_path: Path) -> None:
        enricher = ContextEnricher(ContextConfig(), root=tmp_path)
        result = await enricher.enrich("just chatting, no files")
        assert result.prompt == "just chatting, no files"
        assert result.file_name is None
        assert not result.needs_file_access

    @pytest.mark.asyncio
    async def test_small_file_is_embedded_verbatim(self, tmp_path: Path) -> None:
        target = tmp_path / "todo.md"
        target.write_text("- buy milk\n- call mom\n")
        enricher = ContextEnricher(ContextConfig(), root=tmp_path)

        result = await enricher.enrich("summarize todo.md")

        assert result.path == str(target)
        assert result.truncated is False
        assert "- buy milk\n- call mom\n" in result.prompt
        assert result.prompt.startswith('The user wants me to do the following: "summarize todo.md".')
        assert result.prompt.endswith("Please proceed.")

    @pytest.mark.asyncio
    async def test_large_file_is_cut_to_budget(self, tmp_path: Path) -> None:
        (tmp_path / "big.log").write_text("x" * 5000)
        config = ContextConfig(max_context_tokens=256, chars_per_token=4)
        enricher = ContextEnricher(config, root=tmp_path)

        result = await enricher.enrich("read big.log")

        template = found_template("read big.log", str(tmp_path / "big.log"))
        assert result.truncated is True
        assert result.content_chars == content_budget(template, 1024)
        assert len(result.prompt) == 1024

    @pytest.mark.asyncio
    async def test_large_file_is_not_read_past_budget(self, tmp_path: Path) -> None:
        (tmp_path / "huge.log").write_text("x" * 200_000)
        config = ContextConfig(max_context_tokens=256, chars_per_token=4)
        enricher = ContextEnricher(config, root=tmp_path)

        with patch("hearth.services.enrichment._read_text", wraps=enrichment._read_text) as read:
            result = await enricher.enrich("read huge.log")

        template = found_template("read huge.log", str(tmp_path / "huge.log"))
        budget = content_budget(template, 1024)
        read.assert_called_once_with(tmp_path / "huge.log", budget + 1)
        assert result.truncated is True
        assert result.content_chars == budget

    @pytest.mark.asyncio
    async def test_file_exactly_at_budget_is_not_truncated(self, tmp_path: Path) -> None:
        config = ContextConfig(max_context_tokens=256, chars_per_token=4)
        template = found_template("read fit.txt", str(tmp_path / "fit.txt"))
        budget = content_budget(template, 1024)
        (tmp_path / "fit.txt").write_text("y" * budget)

        result = await ContextEnricher(config, root=tmp_path).enrich("read fit.txt")

        assert result.truncated is False
        assert result.content_chars == budget

    @pytest.mark.asyncio
    async def test_missing_file_yields_not_found_prompt(self, tmp_path: Path) -> None:
        enricher = ContextEnricher(ContextConfig(), root=tmp_path)
        result = await enricher.enrich("open ghost.txt")
        assert result.prompt == not_found_prompt("ghost.txt")
        assert result.file_name == "ghost.txt"
        assert result.path is None
        assert not result.needs_file_access

    @pytest.mark.asyncio
    async def test_only_first_reference_is_used(self, tmp_path: Path) -> None:
        (tmp_path / "second.txt").write_text("second")
        enricher = ContextEnricher(ContextConfig(), root=tmp_path)
        result = await enricher.enrich("diff first.txt against second.txt")
        assert result.file_name == "first.txt"
        assert result.path is None
