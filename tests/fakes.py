"""Test doubles for the orchestrator's ports."""
from __future__ import annotations

import json
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from pi_concierge.domain import CompletionBackendError


def llama_lines(*parts: str, stop: bool = True) -> bytes:
    """A llama.cpp stream body: one ``data:`` line per part, then a stop event."""
    lines = [f"data: {json.dumps({'content': p, 'stop': False})}\n\n" for p in parts]
    if stop:
        lines.append(f"data: {json.dumps({'content': '', 'stop': True})}\n\n")
    return "".join(lines).encode("utf-8")


async def aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def parse_sse(events: List[str]) -> List[Any]:
    """Decode output events: delta content strings, and ``"[DONE]"`` for the sentinel."""
    out: List[Any] = []
    for event in events:
        assert event.startswith("data: ") and event.endswith("\n\n"), event
        data = event[len("data: "):-2]
        if data == "[DONE]":
            out.append("[DONE]")
        else:
            out.append(json.loads(data)["choices"][0]["delta"]["content"])
    return out


def parse_sse_body(body: str) -> List[Any]:
    return parse_sse([block + "\n\n" for block in body.split("\n\n") if block])


async def collect(stream: AsyncIterator[str]) -> List[str]:
    return [event async for event in stream]


class FakeCompletionClient:
    """Records payloads; answers detection calls with *detection* and streams *stream_body*."""

    def __init__(
        self,
        detection: str = "",
        stream_body: bytes = b"",
        complete_error: Optional[Exception] = None,
        stream_error: Optional[Exception] = None,
    ) -> None:
        self.detection = detection
        self.stream_body = stream_body
        self.complete_error = complete_error
        self.stream_error = stream_error
        self.complete_calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []

    async def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.complete_calls.append(payload)
        if self.complete_error is not None:
            raise self.complete_error
        return {"content": self.detection, "stop": True}

    async def open_stream(self, payload: Dict[str, Any]) -> AsyncIterator[bytes]:
        self.stream_calls.append(payload)
        if self.stream_error is not None:
            raise self.stream_error
        return aiter_chunks([self.stream_body])


def backend_down() -> CompletionBackendError:
    return CompletionBackendError("Completion backend error (http://pi/completion): 500 boom", status_code=500)
