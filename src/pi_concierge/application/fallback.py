"""Fallback answer built from a tool result when the final completion call fails.

The tool already ran, so its data should still reach the user.  The payload is
parsed best-effort; anything unrecognized gets the generic notice.
"""

from __future__ import annotations

import json

from pi_concierge.config.constants import UNAVAILABLE

GENERIC_FALLBACK = "I retrieved the system status but encountered an issue displaying it."


def _usable(value: object) -> bool:
    return value not in (None, "", UNAVAILABLE)


def fallback_message(tool_result: str) -> str:
    """One human-readable sentence describing *tool_result*, or the generic notice."""
    try:
        result = json.loads(tool_result)
    except (TypeError, ValueError):
        return GENERIC_FALLBACK
    if not isinstance(result, dict):
        return GENERIC_FALLBACK

    temp = result.get("cpu_temp")
    memory = result.get("memory_usage")
    if _usable(temp) and _usable(memory):
        return f"The Raspberry Pi's CPU temperature is {temp} and memory usage is {memory}."
    if _usable(temp):
        return f"The Raspberry Pi's CPU temperature is {temp}."
    if _usable(memory):
        return f"The Raspberry Pi's memory usage is {memory}."

    uptime = result.get("uptime")
    if _usable(uptime):
        boot = result.get("boot_time")
        if _usable(boot):
            return f"The system uptime is {uptime} (booted {boot})."
        return f"The system uptime is {uptime}."

    return GENERIC_FALLBACK
