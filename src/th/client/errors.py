"""Error types raised by the th client layer."""

from __future__ import annotations

from typing import Optional


class ThError(RuntimeError):
    """Base class for th failures that should be reported to the user."""


class NetworkError(ThError):
    """The request never produced an HTTP response (DNS, TLS, timeout...)."""


class ProtocolError(ThError):
    """A provider answered with a status or body we cannot interpret."""


class CompletionError(ThError):
    """The completion endpoint rejected the request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExecutionError(ThError):
    """The approved command could not be started."""
