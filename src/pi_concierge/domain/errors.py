"""Domain and application errors."""

from __future__ import annotations

from typing import Optional


class ConciergeError(Exception):
    """Base for pi-concierge errors."""
    pass


class CompletionBackendError(ConciergeError):
    """The completion backend was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ToolBackendError(ConciergeError):
    """A tool transport failed (tool server error, ssh failure, non-zero exit).

    Never escapes a tool: the registry converts it into an error-shaped result.
    """
    pass
