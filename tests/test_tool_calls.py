"""Tests for detection-output parsing."""
from __future__ import annotations

import pytest

from pi_concierge.application.tool_calls import parse_tool_call


def test_bare_call():
    assert parse_tool_call("get_system_uptime()") == "get_system_uptime"


def test_surrounding_whitespace_is_trimmed():
    assert parse_tool_call("  get_network_info()\n") == "get_network_info"


@pytest.mark.parametrize("text", [
    "get_system_uptime( )",
    "get_system_uptime ()",
    "get_system_uptime(x)",
    "get_system_uptime() please",
    "[get_system_uptime()]",
    "get_system_uptime",
    "The uptime is 3 days.",
    "",
])
def test_anything_else_is_not_a_call(text):
    assert parse_tool_call(text) is None
