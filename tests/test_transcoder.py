"""Tests for the llama.cpp → OpenAI-delta stream transcoder."""
from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from pi_concierge.application.transcoder import (
    ContentDelta,
    LlamaStreamDecoder,
    StreamEnd,
    encode_event,
    single_shot_stream,
    transcode_stream,
)
from tests.fakes import aiter_chunks, collect, llama_lines, parse_sse


# ---------------------------------------------------------------------------
# LlamaStreamDecoder
# ---------------------------------------------------------------------------

def test_line_split_across_chunks_yields_one_delta():
    d = LlamaStreamDecoder()
    assert d.feed(b'data: {"conten') == []
    assert d.feed(b't":"hi"}\n') == [ContentDelta("hi")]


def test_multibyte_character_split_across_chunks():
    raw = 'data: {"content": "24°C"}\n'.encode("utf-8")
    cut = raw.index("°".encode("utf-8")) + 1  # inside the two-byte sequence
    d = LlamaStreamDecoder()
    events = d.feed(raw[:cut]) + d.feed(raw[cut:])
    assert events == [ContentDelta("24°C")]


def test_stop_event_ends_decoding_and_ignores_the_rest():
    d = LlamaStreamDecoder()
    body = b'data: {"content": "a", "stop": false}\ndata: {"content": "", "stop": true}\ndata: {"content": "late"}\n'
    assert d.feed(body) == [ContentDelta("a"), ContentDelta(""), StreamEnd()]
    assert d.done
    assert d.feed(b'data: {"content": "later"}\n') == []
    assert d.finish() == []


def test_malformed_json_is_skipped(caplog):
    d = LlamaStreamDecoder()
    with caplog.at_level(logging.WARNING, logger="pi_concierge.application.transcoder"):
        events = d.feed(b'data: {not json}\ndata: {"content": "ok"}\n')
    assert events == [ContentDelta("ok")]
    assert "malformed" in caplog.text


def test_lines_without_prefix_are_ignored():
    d = LlamaStreamDecoder()
    assert d.feed(b': keep-alive\n\nevent: ping\n{"content": "x"}\n') == []


def test_crlf_line_endings():
    d = LlamaStreamDecoder()
    assert d.feed(b'data: {"content": "x"}\r\n\r\n') == [ContentDelta("x")]


def test_events_without_content_emit_nothing():
    d = LlamaStreamDecoder()
    assert d.feed(b'data: {"tokens_predicted": 3}\n') == []


def test_finish_without_stop_emits_end_and_drops_partial_line():
    d = LlamaStreamDecoder()
    assert d.feed(b'data: {"content": "a"}\ndata: {"content": "b"') == [ContentDelta("a")]
    assert d.finish() == [StreamEnd()]
    assert d.done


# ---------------------------------------------------------------------------
# encoding
# ---------------------------------------------------------------------------

def test_encode_delta_and_sentinel():
    assert encode_event(StreamEnd()) == "data: [DONE]\n\n"
    encoded = encode_event(ContentDelta("héllo"))
    assert encoded.startswith("data: ") and encoded.endswith("\n\n")
    assert json.loads(encoded[6:]) == {"choices": [{"delta": {"content": "héllo"}}]}


# ---------------------------------------------------------------------------
# transcode_stream
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_transcode_two_chunk_input():
    events = await collect(transcode_stream(aiter_chunks([b'data: {"conten', b't":"hi"}\n'])))
    assert parse_sse(events) == ["hi", "[DONE]"]


@pytest.mark.asyncio
async def test_transcode_stream_with_stop():
    events = await collect(transcode_stream(aiter_chunks([llama_lines("The ", "Pi")])))
    assert parse_sse(events) == ["The ", "Pi", "", "[DONE]"]


@pytest.mark.asyncio
async def test_transcode_terminates_even_without_stop():
    events = await collect(transcode_stream(aiter_chunks([llama_lines("a", stop=False)])))
    assert parse_sse(events) == ["a", "[DONE]"]


@pytest.mark.asyncio
async def test_transcode_stops_reading_after_stop_and_closes_upstream():
    state = {"reads": 0, "closed": False}

    async def upstream():
        try:
            for chunk in (llama_lines("x"), llama_lines("never")):
                state["reads"] += 1
                yield chunk
        finally:
            state["closed"] = True

    events = await collect(transcode_stream(upstream()))
    assert parse_sse(events) == ["x", "", "[DONE]"]
    assert state == {"reads": 1, "closed": True}


@pytest.mark.asyncio
async def test_transcode_closes_upstream_when_consumer_stops_early():
    closed = []

    async def upstream():
        try:
            yield llama_lines("a", stop=False)
            yield llama_lines("b", stop=False)
        finally:
            closed.append(True)

    stream = transcode_stream(upstream())
    first = await stream.__anext__()
    assert parse_sse([first]) == ["a"]
    await stream.aclose()
    assert closed == [True]


@pytest.mark.asyncio
async def test_single_shot_stream():
    events = await collect(single_shot_stream("Hello there."))
    assert parse_sse(events) == ["Hello there.", "[DONE]"]


@pytest.mark.asyncio
async def test_transcode_aclose_before_first_read_closes_upstream():
    upstream = MagicMock()
    upstream.aclose = AsyncMock()

    stream = transcode_stream(upstream)
    await stream.aclose()

    upstream.aclose.assert_awaited()
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
