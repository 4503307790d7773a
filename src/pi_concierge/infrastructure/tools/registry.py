"""Tool registry: name → (definition, async tool function).

The registry is the fault boundary for tools.  ``invoke()`` always returns a
JSON string; an unknown name, a tool that raises, and a result that is not
strict JSON all become ``{"error": ..., "details": ...}`` so the result can
go straight into a ``tool`` message.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, List, Mapping, Tuple

from pi_concierge.domain import ToolDefinition

logger = logging.getLogger(__name__)

# Zero-argument coroutine function returning any JSON-serializable value.
ToolFn = Callable[[], Awaitable[Any]]


class ToolRegistry:
    """Read-only set of tools, built once at startup and shared by all requests."""

    def __init__(self, tools: Mapping[str, Tuple[ToolDefinition, ToolFn]]) -> None:
        self._tools = MappingProxyType(dict(tools))

    @property
    def definitions(self) -> List[ToolDefinition]:
        return [defn for defn, _ in self._tools.values()]

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def invoke(self, name: str) -> str:
        if name not in self._tools:
            return json.dumps({"error": f"Unknown tool: {name!r}", "details": f"Available: {self.names}"})
        _, fn = self._tools[name]
        try:
            # NaN and Infinity are not JSON; a result carrying them is a failed result.
            return json.dumps(await fn(), ensure_ascii=False, allow_nan=False, default=str)
        except Exception as e:  # noqa: BLE001
            logger.warning("Tool %s failed", name, exc_info=True)
            return json.dumps({"error": f"Tool {name!r} failed", "details": str(e) or type(e).__name__})
