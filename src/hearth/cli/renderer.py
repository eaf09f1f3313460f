"""Rich-based terminal output for the interactive session."""

from __future__ import annotations

import os
import time

from rich.console import Console
from rich.markup import escape
from rich.padding import Padding
from rich.panel import Panel
from rich.status import Status

from ..models import EntryKind, HistoryEntry, SessionConfig, StreamingState

console = Console(stderr=True)
# Separate console for stdout markdown rendering (not stderr)
_stdout_console = Console()

# Spinner state
_thinking_start: float = 0
_spinner: Status | None = None


def _short_path(path: str) -> str:
    """Shorten absolute path using ~ for home."""
    home = os.path.expanduser("~")
    if path.startswith(home):
        return "~" + path[len(home) :]
    return path


# ---------------------------------------------------------------------------
# History entries
# ---------------------------------------------------------------------------


def render_entry(entry: HistoryEntry) -> None:
    if entry.kind is EntryKind.USER:
        console.print(f"[bold cyan]you>[/bold cyan] {escape(entry.text)}")
    elif entry.kind is EntryKind.ASSISTANT:
        from rich.markdown import Markdown

        _stdout_console.print(Padding(Markdown(entry.text), (0, 2, 0, 2)))
        _stdout_console.print()
    elif entry.kind is EntryKind.ERROR:
        render_error(entry.text)
    else:
        console.print(f"[grey62]{escape(entry.text)}[/grey62]")


def render_error(message: str) -> None:
    console.print(f"[red bold]{escape(message)}[/red bold]")


def render_history_cleared() -> None:
    console.clear()
    console.print("[grey62]History cleared[/grey62]\n")


# ---------------------------------------------------------------------------
# Thinking spinner
# ---------------------------------------------------------------------------


def start_thinking() -> None:
    """Show a spinner while the model is generating."""
    global _thinking_start, _spinner
    _thinking_start = time.monotonic()
    _spinner = Status("[dim]Responding...[/dim]", console=console, spinner="dots")
    _spinner.start()


def stop_thinking() -> float:
    """Stop the spinner, return elapsed seconds."""
    global _spinner
    elapsed = 0.0
    if _spinner:
        elapsed = time.monotonic() - _thinking_start
        _spinner.stop()
        _spinner = None
    return elapsed


def on_streaming_state(state: StreamingState) -> None:
    if state is StreamingState.RESPONDING:
        start_thinking()
    else:
        elapsed = stop_thinking()
        if elapsed:
            console.print(f"[grey62]  ▪ {elapsed:.1f}s[/grey62]")


# ---------------------------------------------------------------------------
# Status bar / approval
# ---------------------------------------------------------------------------


def status_bar_markup(session: SessionConfig, exit_hint: str | None = None) -> list[tuple[str, str]]:
    """prompt_toolkit formatted text for the bottom toolbar."""
    model = session.selected_model or "Loading models..."
    autopilot = "ON" if session.autopilot else "OFF"
    autopilot_style = "fg:ansigreen" if session.autopilot else "fg:ansired"
    parts = [
        ("", " Active Model: "),
        ("fg:ansiblue", model),
        ("", " | Autopilot (Ctrl+A): "),
        (autopilot_style, autopilot),
    ]
    if exit_hint:
        parts.append(("fg:ansiyellow", f"  {exit_hint}"))
    return parts


def render_approval(message: str) -> None:
    console.print(Panel(escape(message), border_style="yellow", expand=False))


# ---------------------------------------------------------------------------
# Welcome / help
# ---------------------------------------------------------------------------


def render_welcome(model: str | None, base_url: str, working_dir: str, autopilot: bool) -> None:
    console.print(f"\n [bold]hearth[/bold] [dim]─[/dim] {escape(_short_path(working_dir))}")
    parts = [escape(model or "no model"), escape(base_url), f"autopilot {'on' if autopilot else 'off'}"]
    console.print(f" [dim]{' · '.join(parts)}[/dim]\n")


def render_help() -> None:
    console.print()
    console.print(" [bold]Model[/bold]      /model NAME · /models")
    console.print(" [bold]Session[/bold]    /clear · /autopilot (Ctrl+A)")
    console.print(" [bold]Files[/bold]      mention a file name (e.g. notes.md) to include it")
    console.print(" [bold]Exit[/bold]       /quit · Ctrl+C twice · Ctrl+D twice")
    console.print()


def render_models(models: list[str], selected: str | None) -> None:
    if not models:
        console.print("[grey62]No models available[/grey62]\n")
        return
    console.print("\n[bold]Available models:[/bold]")
    for name in models:
        marker = "*" if name == selected else " "
        console.print(f" {marker} {escape(name)}")
    console.print()
