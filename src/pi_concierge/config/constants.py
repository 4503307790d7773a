"""Named constants shared by the completion client, transcoder and tools."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------

# Read timeout for a single completion call. A small model on a Raspberry Pi
# can take well over a minute to produce 512 tokens.
COMPLETION_DEFAULT_TIMEOUT_S: float = 180.0

# Timeout for one tool invocation (tool-server POST or one remote command).
TOOL_DEFAULT_TIMEOUT_S: float = 15.0

# ---------------------------------------------------------------------------
# Streaming wire format
# ---------------------------------------------------------------------------

# Prefix of every event line, both in llama.cpp's stream and in ours.
STREAM_LINE_PREFIX: str = "data: "

# Literal payload of the terminal event sent to the client.
STREAM_DONE_SENTINEL: str = "[DONE]"

# ---------------------------------------------------------------------------
# Tool results
# ---------------------------------------------------------------------------

# Value reported for a composite-tool field whose sub-query failed.
UNAVAILABLE: str = "N/A"

# Maximum characters of a tool result written to the debug log.
MAX_TOOL_RESULT_LOG_CHARS: int = 500
