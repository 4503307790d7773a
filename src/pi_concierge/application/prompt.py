"""Prompt rendering for the ChatML-style template the completion backend expects.

Everything here is pure: no I/O, no failure modes.
"""

from __future__ import annotations

import json
from typing import List, Sequence

from pi_concierge.domain import ASSISTANT, SYSTEM, TOOL, USER, Message, ToolDefinition

IM_START = "<|im_start|>"
IM_END = "<|im_end|>"
TOOL_RESPONSE_START = "<|tool_response_start|>"
TOOL_RESPONSE_END = "<|tool_response_end|>"
TOOL_LIST_START = "<|tool_list_start|>"
TOOL_LIST_END = "<|tool_list_end|>"
TOOL_CALL_START = "<|tool_call_start|>"
TOOL_CALL_END = "<|tool_call_end|>"

# Visible tail of the synthetic assistant turn that carries a tool call.
TOOL_CALL_NOTICE = "Checking system information..."


def _frame(role: str, content: str) -> str:
    return f"{IM_START}{role}\n{content}{IM_END}"


def render_message(message: Message) -> str:
    """Render one message as a role frame; unknown roles render as ``""``."""
    if message.role in (SYSTEM, USER, ASSISTANT):
        return _frame(message.role, message.content)
    if message.role == TOOL:
        return _frame(TOOL, f"{TOOL_RESPONSE_START}{message.content}{TOOL_RESPONSE_END}")
    return ""


def format_prompt(messages: Sequence[Message]) -> str:
    """Join the rendered frames with newlines and leave an assistant frame open."""
    return "\n".join(render_message(m) for m in messages) + f"\n{IM_START}{ASSISTANT}\n"


def build_system_message(
    tools: Sequence[ToolDefinition],
    assistant_name: str,
    intro: str,
) -> Message:
    """System message advertising *tools* and the bare-call reply convention."""
    tool_list = "[\n" + ",\n".join(
        "  " + json.dumps(t.to_dict(), ensure_ascii=False) for t in tools
    ) + "\n]"
    example = f"{tools[0].name}()" if tools else "tool_name()"
    content = (
        f"You are {assistant_name}, {intro}. "
        "You have access to the following tools:\n\n"
        f"{TOOL_LIST_START}\n{tool_list}\n{TOOL_LIST_END}\n\n"
        "When asked about system information, uptime, network, or processes, "
        "respond with ONLY the appropriate function call like:\n"
        f"{example}\n\n"
        "Do not add any other text when calling a tool. "
        "After receiving tool results, provide a natural language explanation."
    )
    return Message(role=SYSTEM, content=content)


def with_system_message(messages: Sequence[Message], system: Message) -> List[Message]:
    """Return *messages* with *system* as the one and only leading system message.

    A leading system message from the caller is replaced, not extended, so the
    tool list does not pile up as a client replays a growing history.
    """
    if messages and messages[0].role == SYSTEM:
        return [system, *messages[1:]]
    return [system, *messages]


def tool_call_marker(raw_call: str) -> str:
    """Content of the synthetic assistant turn recording a tool call."""
    return f"{TOOL_CALL_START}[{raw_call}]{TOOL_CALL_END}{TOOL_CALL_NOTICE}"


def augment_with_tool_result(
    messages: Sequence[Message],
    raw_call: str,
    tool_result: str,
) -> List[Message]:
    """Append the assistant tool-call turn and the tool-result turn."""
    return [
        *messages,
        Message(role=ASSISTANT, content=tool_call_marker(raw_call)),
        Message(role=TOOL, content=tool_result),
    ]
