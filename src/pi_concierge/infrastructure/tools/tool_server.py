"""Tool transport: a tool server that answers ``POST {name, arguments}`` with JSON."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from pi_concierge.config.constants import TOOL_DEFAULT_TIMEOUT_S
from pi_concierge.domain import ToolBackendError

from .registry import ToolFn

logger = logging.getLogger(__name__)


class ToolServerClient:
    """Calls named tools on a remote tool server.

    Raises ``ToolBackendError`` for transport failures, non-2xx statuses and
    bodies that are not JSON.
    """

    def __init__(
        self,
        url: str,
        timeout_s: float = TOOL_DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_s
        self._transport = transport

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        body = {"name": name, "arguments": arguments or {}}
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout), transport=self._transport,
            ) as client:
                r = await client.post(self._url, json=body)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise ToolBackendError(f"Tool server error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ToolBackendError(f"Tool server unreachable ({self._url}): {e}") from e
        except ValueError as e:
            raise ToolBackendError(f"Tool server returned invalid JSON: {e}") from e
        logger.debug("Tool server %s -> %r", name, data)
        return data


def tool_server_tool(client: ToolServerClient, name: str, error_message: str) -> ToolFn:
    """Tool function forwarding to *client*; failures become ``{error, details}``."""

    async def _call() -> Any:
        try:
            return await client.call(name)
        except ToolBackendError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return {"error": error_message, "details": str(e)}

    _call.__name__ = name
    return _call
