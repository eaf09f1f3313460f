"""Terminal chat for local OpenAI-compatible model servers."""

from importlib.metadata import version as _v

try:
    __version__ = _v("hearth")
except Exception:
    __version__ = "0.0.0"
