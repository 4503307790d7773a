"""The tools advertised to the model, and the message each reports when it cannot get data."""

from __future__ import annotations

from typing import Dict, Tuple

from pi_concierge.domain import ToolDefinition

DEFAULT_TOOL_DEFINITIONS: Tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="get_raspberry_pi_status",
        description="Gets CPU temperature, memory usage, and disk usage",
    ),
    ToolDefinition(
        name="get_system_uptime",
        description="Gets system uptime and boot time",
    ),
    ToolDefinition(
        name="get_network_info",
        description="Gets network interfaces and traffic statistics",
    ),
    ToolDefinition(
        name="get_top_processes",
        description="Gets top 5 processes by CPU and memory usage",
    ),
)

ERROR_MESSAGES: Dict[str, str] = {
    "get_raspberry_pi_status": "Could not retrieve Pi status",
    "get_system_uptime": "Could not retrieve uptime",
    "get_network_info": "Could not retrieve network info",
    "get_top_processes": "Could not retrieve process list",
}
