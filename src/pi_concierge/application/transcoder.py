"""Stream transcoder: llama.cpp completion stream → OpenAI-style delta stream.

Input is the raw byte stream of a ``stream: true`` completion call: lines of
``data: {"content": "...", "stop": false}``, the last one carrying
``"stop": true``.  Output is Server-Sent Events in the shape chat clients
already understand::

    data: {"choices": [{"delta": {"content": "..."}}]}\\n\\n
    ...
    data: [DONE]\\n\\n

Bytes arrive in arbitrary chunks.  Decoding is incremental (a multi-byte
character may be split across reads) and only complete lines are parsed; the
trailing fragment waits in the buffer for the next read.  Every output stream
ends with the ``[DONE]`` sentinel, whether or not upstream sent ``stop``.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncGenerator, AsyncIterator, List, Union

from pi_concierge.config.constants import STREAM_DONE_SENTINEL, STREAM_LINE_PREFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentDelta:
    content: str


@dataclass(frozen=True)
class StreamEnd:
    pass


StreamEvent = Union[ContentDelta, StreamEnd]


class LlamaStreamDecoder:
    """Incremental decoder from upstream bytes to ``StreamEvent``s.

    ``feed()`` returns the events completed by a chunk; ``finish()`` is called
    once upstream is exhausted.  After a ``StreamEnd`` has been produced the
    decoder is ``done`` and ignores further input.
    """

    def __init__(self, prefix: str = STREAM_LINE_PREFIX) -> None:
        self._prefix = prefix
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        events: List[StreamEvent] = []
        for line in lines:
            events.extend(self._parse_line(line))
            if self.done:
                break
        return events

    def finish(self) -> List[StreamEvent]:
        if self.done:
            return []
        tail = self._buffer + self._decoder.decode(b"", final=True)
        if tail.strip():
            logger.debug("Discarding unterminated stream fragment: %r", tail)
        self._buffer = ""
        self.done = True
        return [StreamEnd()]

    def _parse_line(self, line: str) -> List[StreamEvent]:
        line = line.strip()
        if not line.startswith(self._prefix):
            return []
        try:
            data = json.loads(line[len(self._prefix):])
        except json.JSONDecodeError as e:
            logger.warning("Skipping malformed stream line (%s): %r", e, line)
            return []
        if not isinstance(data, dict):
            logger.warning("Skipping non-object stream line: %r", line)
            return []

        events: List[StreamEvent] = []
        content = data.get("content")
        if isinstance(content, str):
            events.append(ContentDelta(content))
        if data.get("stop") is True:
            self.done = True
            events.append(StreamEnd())
        return events


def encode_event(event: StreamEvent) -> str:
    """Serialize one event as an SSE ``data:`` block."""
    if isinstance(event, StreamEnd):
        return f"{STREAM_LINE_PREFIX}{STREAM_DONE_SENTINEL}\n\n"
    payload = {"choices": [{"delta": {"content": event.content}}]}
    return f"{STREAM_LINE_PREFIX}{json.dumps(payload, ensure_ascii=False)}\n\n"


async def _close_upstream(chunks: AsyncIterator[bytes]) -> None:
    aclose = getattr(chunks, "aclose", None)
    if aclose is not None:
        await aclose()


class TranscodedStream:
    """SSE events re-encoded from upstream *chunks* as they arrive.

    Reading stops at the first ``stop`` event.  Upstream is closed when the
    events run out, when the consumer stops early, and on ``aclose()`` even
    if iteration never started (a client that disconnects before the first
    event would otherwise leave the backend connection open).
    """

    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks
        self._events = self._run()

    def __aiter__(self) -> "TranscodedStream":
        return self

    async def __anext__(self) -> str:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        await self._events.aclose()
        await _close_upstream(self._chunks)

    async def _run(self) -> AsyncGenerator[str, None]:
        decoder = LlamaStreamDecoder()
        try:
            async for chunk in self._chunks:
                for event in decoder.feed(chunk):
                    yield encode_event(event)
                if decoder.done:
                    return
            for event in decoder.finish():
                yield encode_event(event)
        finally:
            await _close_upstream(self._chunks)


def transcode_stream(chunks: AsyncIterator[bytes]) -> TranscodedStream:
    return TranscodedStream(chunks)


async def single_shot_stream(text: str) -> AsyncGenerator[str, None]:
    """A complete stream made of one content delta and the sentinel."""
    yield encode_event(ContentDelta(text))
    yield encode_event(StreamEnd())


# What ``ChatOrchestrator.respond`` hands to the HTTP layer; both forms have ``aclose()``.
EventStream = Union[TranscodedStream, AsyncGenerator[str, None]]
