"""Ports (abstract interfaces) used by the application layer.

Each port is a ``Protocol`` so the application depends only on the *shape* of the
collaborator, not on a concrete implementation.  Infrastructure adapters must satisfy
these shapes; the application never imports from infrastructure.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Protocol

from pi_concierge.domain import ToolDefinition


class CompletionClient(Protocol):
    """Text-completion backend (llama.cpp ``POST /completion``)."""

    async def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Non-streaming call; returns the decoded JSON body (``{"content": ..., ...}``).

        Raises ``CompletionBackendError`` on transport failure or non-2xx status.
        """
        ...

    async def open_stream(self, payload: Dict[str, Any]) -> AsyncIterator[bytes]:
        """Streaming call.

        Sends the request and checks the status *before* returning, so a failing
        backend raises ``CompletionBackendError`` here rather than mid-stream.
        The returned iterator owns the connection and releases it when exhausted
        or closed.
        """
        ...


class ToolInvoker(Protocol):
    """Named zero-argument tools with a never-raising ``invoke``."""

    @property
    def definitions(self) -> List[ToolDefinition]: ...

    def __contains__(self, name: object) -> bool: ...

    async def invoke(self, name: str) -> str:
        """Run the tool and return its JSON-serialized result (``{"error": ...}`` on failure)."""
        ...


class RemoteRunner(Protocol):
    """Run one shell command on the monitored machine and return its stdout.

    Raises ``ToolBackendError`` on non-zero exit, timeout, or transport failure.
    """

    async def run(self, command: str) -> str: ...
