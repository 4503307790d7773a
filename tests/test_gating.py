"""Tests for the keyword gate in front of the detection call."""
from __future__ import annotations

import pytest

from pi_concierge.application.gating import needs_tool
from pi_concierge.config import GatingConfig
from pi_concierge.domain import Message

_DEFAULT = GatingConfig()


def _gate(text: str, role: str = "user") -> bool:
    return needs_tool([Message(role, text)], _DEFAULT.keywords, _DEFAULT.exclusions)


@pytest.mark.parametrize("text", [
    "what's the CPU status?",
    "How hot is it? temperature please",
    "show memory",
    "what is the uptime",
    "Network details",
    "top processes",
    "disk space?",
    "give me system info",
])
def test_keyword_triggers(text):
    assert _gate(text) is True


def test_plain_chat_does_not_trigger():
    assert _gate("tell me a joke") is False


def test_exclusion_wins():
    assert _gate("what's the weather?") is False
    assert _gate("cpu status but also weather") is False


def test_only_user_turns_trigger():
    assert _gate("cpu status", role="assistant") is False


def test_empty_history():
    assert needs_tool([], _DEFAULT.keywords, _DEFAULT.exclusions) is False


def test_only_last_message_counts():
    msgs = [Message("user", "cpu status"), Message("assistant", "ok"), Message("user", "thanks")]
    assert needs_tool(msgs, _DEFAULT.keywords, _DEFAULT.exclusions) is False


def test_custom_keyword_sets():
    msgs = [Message("user", "How LOUD is the fan?")]
    assert needs_tool(msgs, ["fan"]) is True
    assert needs_tool(msgs, ["fan"], ["loud"]) is False
