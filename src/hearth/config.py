"""Configuration loader: YAML file with environment variable fallbacks."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_BASE_URL = "http://127.0.0.1:1234/v1"
DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    ".git",
    "node_modules",
    "dist",
    "build",
    "__pycache__",
    ".venv",
    "venv",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
)


@dataclass
class BackendConfig:
    base_url: str = DEFAULT_BASE_URL
    # Local servers ignore the key, but the OpenAI client refuses an empty one.
    api_key: str = "lm-studio"
    model: str | None = None
    request_timeout: float = 600.0


@dataclass
class ContextConfig:
    max_context_tokens: int = 4096
    chars_per_token: int = 4
    max_search_depth: int = 32
    ignore_dirs: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_IGNORE_DIRS))

    @property
    def max_chars(self) -> int:
        return self.max_context_tokens * self.chars_per_token


@dataclass
class SessionSettings:
    autopilot: bool = False
    exit_confirm_ms: int = 1000


@dataclass
class AppSettings:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".hearth")


@dataclass
class AppConfig:
    backend: BackendConfig = field(default_factory=BackendConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    session: SessionSettings = field(default_factory=SessionSettings)
    app: AppSettings = field(default_factory=AppSettings)


def _get_config_path(data_dir: Path | None = None) -> Path:
    if data_dir:
        return data_dir / "config.yaml"
    return Path.home() / ".hearth" / "config.yaml"


def _as_bool(value: Any) -> bool:
    return str(value).lower() not in ("false", "0", "no", "off", "")


def _as_positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping in config.yaml")
    return section


def load_config(config_path: Path | None = None) -> AppConfig:
    raw: dict[str, Any] = {}
    path = config_path or _get_config_path()

    if path.exists():
        with open(path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")

    backend_raw = _section(raw, "backend")
    base_url = backend_raw.get("base_url") or os.environ.get("HEARTH_BASE_URL", DEFAULT_BASE_URL)
    api_key = backend_raw.get("api_key") or os.environ.get("HEARTH_API_KEY", "lm-studio")
    model = backend_raw.get("model") or os.environ.get("HEARTH_MODEL") or None
    timeout_raw = backend_raw.get("request_timeout", os.environ.get("HEARTH_REQUEST_TIMEOUT", 600))
    try:
        request_timeout = float(timeout_raw)
    except (TypeError, ValueError):
        raise ConfigError(f"backend.request_timeout must be a number, got {timeout_raw!r}") from None
    if request_timeout <= 0:
        raise ConfigError("backend.request_timeout must be positive")

    backend = BackendConfig(
        base_url=base_url.rstrip("/"),
        api_key=api_key,
        model=model,
        request_timeout=request_timeout,
    )

    context_raw = _section(raw, "context")
    ignore_raw = context_raw.get("ignore_dirs", list(DEFAULT_IGNORE_DIRS))
    if not isinstance(ignore_raw, list):
        raise ConfigError("context.ignore_dirs must be a list of directory names")
    context = ContextConfig(
        max_context_tokens=_as_positive_int(context_raw.get("max_context_tokens", 4096), "context.max_context_tokens"),
        chars_per_token=_as_positive_int(context_raw.get("chars_per_token", 4), "context.chars_per_token"),
        max_search_depth=_as_positive_int(context_raw.get("max_search_depth", 32), "context.max_search_depth"),
        ignore_dirs=frozenset(str(d) for d in ignore_raw),
    )

    session_raw = _section(raw, "session")
    session = SessionSettings(
        autopilot=_as_bool(session_raw.get("autopilot", os.environ.get("HEARTH_AUTOPILOT", "false"))),
        exit_confirm_ms=_as_positive_int(session_raw.get("exit_confirm_ms", 1000), "session.exit_confirm_ms"),
    )

    app_raw = _section(raw, "app")
    data_dir = Path(os.path.expanduser(app_raw.get("data_dir", "~/.hearth")))
    app_settings = AppSettings(data_dir=data_dir)

    app_settings.data_dir.mkdir(parents=True, exist_ok=True)
    try:
        app_settings.data_dir.chmod(stat.S_IRWXU)  # 0700
        if path.exists():
            path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0600
    except OSError:
        pass  # May fail on Windows or non-owned files

    return AppConfig(backend=backend, context=context, session=session, app=app_settings)
