"""REPL loop and one-shot mode for the Hearth CLI."""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import signal
import sys
from typing import Any

from ..config import AppConfig
from ..errors import HearthError
from ..models import EntryKind, HistoryEntry
from ..services.ai_service import AIService
from ..services.exit_guard import ExitConfirmation
from ..services.recall import RecallHistory, load_persisted_prompts
from ..session import SessionController
from . import renderer

logger = logging.getLogger(__name__)

_IS_WINDOWS = platform.system() == "Windows"

_EXIT_COMMANDS = frozenset({"/quit", "/exit"})

_EXIT_KEY_LABELS = {"ctrl-c": "Ctrl+C", "ctrl-d": "Ctrl+D"}


def _add_signal_handler(loop: asyncio.AbstractEventLoop, sig: int, callback: Any) -> bool:
    """Add a signal handler, returning False on Windows where it's unsupported."""
    if _IS_WINDOWS:
        return False
    try:
        loop.add_signal_handler(sig, callback)
        return True
    except NotImplementedError:
        return False


def _remove_signal_handler(loop: asyncio.AbstractEventLoop, sig: int) -> None:
    """Remove a signal handler, no-op on Windows."""
    if _IS_WINDOWS:
        return
    try:
        loop.remove_signal_handler(sig)
    except NotImplementedError:
        pass


def _exit_hint(exit_guard: ExitConfirmation) -> str | None:
    for key, label in _EXIT_KEY_LABELS.items():
        if exit_guard.pressed_once(key):
            return f"Press {label} again to exit."
    return None


def handle_command(controller: SessionController, user_input: str) -> bool:
    """Run a slash command. Returns False when the session should end."""
    cmd = user_input.lower().split()[0]
    if cmd in _EXIT_COMMANDS:
        return False
    if cmd == "/clear":
        controller.clear_history()
    elif cmd == "/help":
        renderer.render_help()
    elif cmd == "/models":
        renderer.render_models(controller.models, controller.session.selected_model)
    elif cmd == "/autopilot":
        controller.toggle_autopilot()
    elif cmd == "/model":
        parts = user_input.split(maxsplit=1)
        if len(parts) < 2:
            current = controller.session.selected_model or "(none)"
            renderer.console.print(f"[grey62]Current model: {current}[/grey62]")
            renderer.console.print("[grey62]Usage: /model <model_name>[/grey62]\n")
        else:
            controller.select_model(parts[1].strip())
    else:
        renderer.render_error(f"Unknown command: {cmd}. Type /help for commands.")
    return True


async def run_cli(config: AppConfig, prompt: str | None = None) -> int:
    """Main entry point for CLI mode. Returns the process exit status."""
    ai_service = AIService(config.backend)
    if prompt is not None:
        return await run_one_shot(config, ai_service, prompt)

    from prompt_toolkit.history import FileHistory

    controller = SessionController(config, ai_service=ai_service)
    persisted = FileHistory(str(config.app.data_dir / "cli_history"))
    controller.set_prior_prompts(load_persisted_prompts(persisted))

    rendered = [0]

    def _render_new_entries(entries: list[HistoryEntry]) -> None:
        if not entries:
            if rendered[0]:
                renderer.render_history_cleared()
            rendered[0] = 0
            return
        for entry in entries[rendered[0] :]:
            # User lines are already on screen as typed at the prompt.
            if entry.kind is not EntryKind.USER:
                renderer.render_entry(entry)
        rendered[0] = len(entries)

    controller.history.add_listener(_render_new_entries)
    controller.status.add_listener(renderer.on_streaming_state)

    await controller.start()
    renderer.render_welcome(
        model=controller.session.selected_model,
        base_url=config.backend.base_url,
        working_dir=os.getcwd(),
        autopilot=controller.session.autopilot,
    )
    await _run_repl(config, controller, RecallHistory(lambda: controller.recall, persisted))
    return 0


async def run_one_shot(config: AppConfig, ai_service: AIService, prompt: str) -> int:
    """Send a single prompt, print the reply to stdout and exit."""
    try:
        model = config.backend.model
        if not model:
            models = await ai_service.list_models()
            if not models:
                raise HearthError(f"No models are available at {config.backend.base_url}")
            model = models[0]
        reply = await ai_service.complete(model, prompt)
    except HearthError as e:
        print(f"[Error] {e}", file=sys.stderr)
        return 1
    sys.stdout.write(reply + "\n")
    sys.stdout.flush()
    return 0


async def _run_repl(config: AppConfig, controller: SessionController, recall_history: RecallHistory) -> None:
    """Run the interactive REPL."""
    from prompt_toolkit import PromptSession
    from prompt_toolkit.application import run_in_terminal
    from prompt_toolkit.key_binding import KeyBindings

    exit_requested = asyncio.Event()
    exit_guard = ExitConfirmation(
        on_confirm=lambda _key: exit_requested.set(),
        window_ms=config.session.exit_confirm_ms,
    )

    kb = KeyBindings()

    @kb.add("escape", "enter")
    def _newline(event: Any) -> None:
        event.current_buffer.insert_text("\n")

    # Ctrl+C: clear buffer if text present, otherwise counts toward exit
    @kb.add("c-c")
    def _handle_ctrl_c(event: Any) -> None:
        buf = event.current_buffer
        if buf.text:
            buf.reset()
        elif exit_guard.press("ctrl-c"):
            event.app.exit(result="")

    # Ctrl+D: delete forward if text present, otherwise counts toward exit
    @kb.add("c-d")
    def _handle_ctrl_d(event: Any) -> None:
        buf = event.current_buffer
        if buf.text:
            buf.delete()
        elif exit_guard.press("ctrl-d"):
            event.app.exit(result="")

    @kb.add("c-a")
    def _toggle_autopilot(event: Any) -> None:
        run_in_terminal(controller.toggle_autopilot)

    session: PromptSession[str] = PromptSession(
        history=recall_history,
        key_bindings=kb,
        multiline=False,
        bottom_toolbar=lambda: renderer.status_bar_markup(controller.session, _exit_hint(exit_guard)),
        refresh_interval=0.25,
    )
    approval_session: PromptSession[str] = PromptSession()

    def _on_sigint() -> None:
        if not exit_guard.press("ctrl-c"):
            renderer.console.print("[yellow]Press Ctrl+C again to exit.[/yellow]")

    async def _guarded(work: Any) -> bool:
        return await _run_until_exit(controller, work, exit_requested, _on_sigint)

    try:
        while not exit_requested.is_set():
            try:
                user_input = await session.prompt_async("> ")
            except EOFError:
                break
            except KeyboardInterrupt:
                continue

            if exit_requested.is_set():
                break

            command = user_input.strip()
            if not command:
                continue

            if command.startswith("/"):
                if not handle_command(controller, command):
                    break
                continue

            if not await _guarded(controller.submit(user_input)):
                break

            # Approval prompt: Enter or y approves, n denies, anything else asks again.
            if controller.approvals.is_pending:
                renderer.render_approval(controller.approvals.pending.message)
            while controller.approvals.is_pending:
                try:
                    answer = await approval_session.prompt_async("(Y/n) ")
                except (EOFError, KeyboardInterrupt):
                    answer = "n"
                if not await _guarded(controller.answer_approval(answer)):
                    return
    finally:
        exit_guard.cancel_all()
        renderer.stop_thinking()


async def _run_until_exit(
    controller: SessionController,
    work: Any,
    exit_requested: asyncio.Event,
    on_sigint: Any,
) -> bool:
    """Await ``work`` unless exit is confirmed first. Returns False on exit.

    prompt_toolkit owns SIGINT while a prompt is showing, so the handler is
    only installed for the duration of the work.
    """
    loop = asyncio.get_running_loop()
    work_task = asyncio.ensure_future(work)
    exit_wait = asyncio.ensure_future(exit_requested.wait())
    _add_signal_handler(loop, signal.SIGINT, on_sigint)
    try:
        done, _pending = await asyncio.wait({work_task, exit_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        _remove_signal_handler(loop, signal.SIGINT)
        exit_wait.cancel()

    if work_task in done:
        work_task.result()
        return True

    controller.cancel()
    work_task.cancel()
    try:
        await work_task
    except asyncio.CancelledError:
        pass
    return False
