"""Exception types raised inside Hearth."""

from __future__ import annotations


class HearthError(Exception):
    """Base class for every error Hearth raises on purpose."""


class ConfigError(HearthError, ValueError):
    pass


class BackendError(HearthError):
    """The model server could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RequestTimeoutError(BackendError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Request timed out after {timeout_s:g}s")
        self.timeout_s = timeout_s


class ResponseFormatError(HearthError):
    """The completion body did not have the ``choices[0].message.content`` shape."""


class ApprovalPendingError(HearthError):
    """Raised when an approval is requested while another one is still waiting."""
