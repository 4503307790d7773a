"""Domain models: messages, tool definitions and the per-stage outcome variants. Pure data, no I/O."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Union

# Roles the prompt formatter knows how to frame.  Other roles are accepted on
# input and rendered as empty frames.
SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"
TOOL = "tool"


@dataclass(frozen=True)
class Message:
    """One conversation turn."""
    role: str
    content: str


@dataclass(frozen=True)
class ToolDefinition:
    """Name and description shown to the model in the system message."""
    name: str
    description: str

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description}


# ---------------------------------------------------------------------------
# Detection stage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoToolNeeded:
    """The keyword gate said no; no detection call was made."""


@dataclass(frozen=True)
class NoMatch:
    """A detection call was made but its output is not a known tool call.

    ``text`` is the trimmed model output, which becomes the answer verbatim.
    """
    text: str


@dataclass(frozen=True)
class Matched:
    """The detection call produced exactly ``<name>()`` for a registered tool."""
    name: str
    raw_call: str


DetectionOutcome = Union[NoToolNeeded, NoMatch, Matched]


# ---------------------------------------------------------------------------
# Final-answer stage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Streamed:
    """The backend accepted the call; ``chunks`` yields its raw response bytes."""
    chunks: AsyncIterator[bytes]


@dataclass(frozen=True)
class Fallback:
    """The answer is a single pre-built piece of text."""
    text: str


FinalOutcome = Union[Streamed, Fallback]
