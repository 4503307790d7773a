"""Keyword gate in front of the tool-detection call.

A detection round costs a full completion call, so it only runs when the latest
user turn mentions something a system-status tool can answer.  This trades the
occasional missed phrasing for not paying that call on ordinary chat.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from pi_concierge.domain import USER, Message


def needs_tool(
    messages: Sequence[Message],
    keywords: Iterable[str],
    exclusions: Iterable[str] = (),
) -> bool:
    """True iff the last message is a user turn that hits a keyword and no exclusion."""
    if not messages:
        return False
    last = messages[-1]
    if last.role != USER:
        return False
    text = last.content.lower()
    if any(word.lower() in text for word in exclusions):
        return False
    return any(word.lower() in text for word in keywords)
