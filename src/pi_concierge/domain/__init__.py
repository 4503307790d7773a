"""Domain layer: entities and value objects. No I/O."""

from .models import (
    ASSISTANT,
    SYSTEM,
    TOOL,
    USER,
    DetectionOutcome,
    Fallback,
    FinalOutcome,
    Matched,
    Message,
    NoMatch,
    NoToolNeeded,
    Streamed,
    ToolDefinition,
)
from .errors import CompletionBackendError, ConciergeError, ToolBackendError

__all__ = [
    "ASSISTANT",
    "SYSTEM",
    "TOOL",
    "USER",
    "DetectionOutcome",
    "Fallback",
    "FinalOutcome",
    "Matched",
    "Message",
    "NoMatch",
    "NoToolNeeded",
    "Streamed",
    "ToolDefinition",
    "CompletionBackendError",
    "ConciergeError",
    "ToolBackendError",
]
