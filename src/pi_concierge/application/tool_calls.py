"""Parsing of the detection call's output."""

from __future__ import annotations

import re
from typing import Optional

# Exactly ``name()``: no arguments, no inner whitespace, nothing around it.
_TOOL_CALL_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\(\)")


def parse_tool_call(text: str) -> Optional[str]:
    """Return the tool name if *text* (trimmed) is a bare zero-argument call, else None."""
    m = _TOOL_CALL_RE.fullmatch(text.strip())
    return m.group(1) if m else None
