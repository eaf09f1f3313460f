"""CLI entry point for the hearth command."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import AppConfig, _get_config_path, load_config
from .errors import ConfigError, HearthError


def _print_setup_guide(config_path: Path) -> None:
    print(
        f"\nHearth reads {config_path}, for example:\n\n"
        "backend:\n"
        '  base_url: "http://127.0.0.1:1234/v1"\n'
        "  request_timeout: 600\n"
        "context:\n"
        "  max_context_tokens: 4096\n"
        "session:\n"
        "  autopilot: false\n"
        "\nOr set environment variables:\n"
        "  HEARTH_BASE_URL=http://127.0.0.1:1234/v1\n"
        "  HEARTH_MODEL=your-model-id\n",
        file=sys.stderr,
    )


def _load_config_or_exit(config_path: Path | None) -> AppConfig:
    path = config_path or _get_config_path()
    try:
        return load_config(path)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        _print_setup_guide(path)
        sys.exit(1)


async def _test_connection(config: AppConfig) -> int:
    from .services.ai_service import AIService

    ai_service = AIService(config.backend)

    print("Config:")
    print(f"  Endpoint: {config.backend.base_url}")
    print(f"  Model:    {config.backend.model or '(first available)'}")
    print(f"  Timeout:  {config.backend.request_timeout:g}s")

    print("\n1. Listing models...")
    valid, message, models = await ai_service.validate_connection()
    if not valid:
        print(f"   FAILED - {message}")
        return 1
    print(f"   OK - {len(models)} model(s) available")
    for m in models[:10]:
        print(f"     - {m}")

    model = config.backend.model or (models[0] if models else None)
    if not model:
        print("   FAILED - no model loaded on the server")
        return 1

    print(f"\n2. Sending test prompt to {model}...")
    try:
        reply = await ai_service.complete(model, "Say hello in one sentence.")
    except HearthError as e:
        print(f"   FAILED - {e}")
        return 1
    print(f"   OK - Response: {reply.strip() or '(empty response)'}")

    print("\nAll checks passed.")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(prog="hearth", description="Hearth - chat with a local model from the terminal")
    parser.add_argument("-p", "--prompt", help="Send a single prompt, print the reply and exit")
    parser.add_argument("-m", "--model", help="Model id to use instead of the first one the server lists")
    parser.add_argument("--autopilot", action="store_true", help="Read referenced files without asking")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--test", action="store_true", help="Test connection settings and exit")
    parser.add_argument("--debug", action="store_true", help="Log debug output to stderr")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = _load_config_or_exit(args.config)
    if args.model:
        config.backend.model = args.model
    if args.autopilot:
        config.session.autopilot = True

    if args.test:
        sys.exit(asyncio.run(_test_connection(config)))

    from .cli.repl import run_cli

    try:
        status = asyncio.run(run_cli(config, prompt=args.prompt))
    except KeyboardInterrupt:
        status = 130
    sys.exit(status)


if __name__ == "__main__":
    main()
