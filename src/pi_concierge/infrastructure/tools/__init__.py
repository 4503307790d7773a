"""Tool registry factory: build the deployment's tools for a ToolsConfig."""

from __future__ import annotations

import functools
from typing import Optional

from pi_concierge.application.ports import RemoteRunner
from pi_concierge.config.schema import ToolsConfig

from .definitions import DEFAULT_TOOL_DEFINITIONS, ERROR_MESSAGES
from .registry import ToolFn, ToolRegistry
from .runners import LocalRunner, SSHRunner, build_runner
from .system_tools import COMMAND_TOOLS
from .tool_server import ToolServerClient, tool_server_tool


def build_tool_registry(
    config: ToolsConfig,
    *,
    runner: Optional[RemoteRunner] = None,
    tool_server: Optional[ToolServerClient] = None,
) -> ToolRegistry:
    """Return the default tool set wired to ``config.backend``.

    ``"tool_server"``
        Each tool is a ``POST {name, arguments: {}}`` to ``config.tool_server_url``.

    ``"ssh"`` / ``"local"``
        Each tool runs shell commands through a ``RemoteRunner`` and parses
        their output.

    *runner* and *tool_server* override the transport built from config.
    """
    if config.backend == "tool_server":
        client = tool_server or ToolServerClient(config.tool_server_url, timeout_s=config.timeout_s)
        return ToolRegistry({
            d.name: (d, tool_server_tool(client, d.name, ERROR_MESSAGES[d.name]))
            for d in DEFAULT_TOOL_DEFINITIONS
        })

    shell = runner or build_runner(config)
    return ToolRegistry({
        d.name: (d, functools.partial(COMMAND_TOOLS[d.name], shell))
        for d in DEFAULT_TOOL_DEFINITIONS
    })


__all__ = [
    "DEFAULT_TOOL_DEFINITIONS",
    "LocalRunner",
    "SSHRunner",
    "ToolFn",
    "ToolRegistry",
    "ToolServerClient",
    "build_runner",
    "build_tool_registry",
]
