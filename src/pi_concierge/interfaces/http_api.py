"""HTTP API: FastAPI app wired to the chat orchestrator."""

from __future__ import annotations

import functools
import hmac
import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from pydantic import BaseModel

from pi_concierge.application.orchestrator import ChatOrchestrator
from pi_concierge.config import ConciergeConfig, load_config
from pi_concierge.domain import CompletionBackendError, Message
from pi_concierge.infrastructure.grammar import load_grammar
from pi_concierge.infrastructure.llama import LlamaCompletionClient
from pi_concierge.infrastructure.tools import build_tool_registry

logger = logging.getLogger(__name__)


def build_orchestrator(config: ConciergeConfig) -> ChatOrchestrator:
    """Wire the orchestrator's collaborators from *config*."""
    client = LlamaCompletionClient(
        url=config.completion.url,
        api_key=config.completion.api_key,
        timeout_s=config.completion.timeout_s,
    )
    tools = build_tool_registry(config.tools)
    return ChatOrchestrator(
        client,
        tools,
        config,
        load_grammar=functools.partial(load_grammar, config.grammar_path),
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    # Tool registry and system message are process-wide and built once.
    app.state.orchestrator = build_orchestrator(load_config())
    yield


app = FastAPI(title="pi-concierge", lifespan=_lifespan)


_AUTH_EXEMPT_PATHS = frozenset({"/health"})
_BEARER = "Bearer "


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": "Unauthorized", "detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.middleware("http")
async def _auth_middleware(request: Request, call_next):
    """Bearer-token check, on only when ``PI_CONCIERGE_API_KEY`` is set.

    Liveness probes (``/health``) are never challenged.  The token is compared
    in constant time.
    """
    expected = os.environ.get("PI_CONCIERGE_API_KEY", "").strip()
    if not expected or request.url.path in _AUTH_EXEMPT_PATHS:
        return await call_next(request)

    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER):
        return _unauthorized("Missing 'Authorization: Bearer <key>' header")
    if not hmac.compare_digest(header[len(_BEARER):].encode(), expected.encode()):
        return _unauthorized("Invalid API key")
    return await call_next(request)


def get_orchestrator(request: Request) -> ChatOrchestrator:
    """The app's orchestrator; built on first use when the lifespan did not run."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = build_orchestrator(load_config())
        request.app.state.orchestrator = orchestrator
    return orchestrator


class ChatMessage(BaseModel):
    role: str
    content: Optional[str] = ""


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/api/chat")
async def chat(req: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Answer the conversation as an OpenAI-style delta stream.

    Each event is::

        data: {"choices": [{"delta": {"content": "..."}}]}\\n\\n

    and the stream ends with ``data: [DONE]\\n\\n``.  A completion backend
    failure before streaming starts is a ``502``.
    """
    logger.info("POST /api/chat messages=%d", len(req.messages))
    messages = [Message(role=m.role, content=m.content or "") for m in req.messages]
    try:
        stream = await orchestrator.respond(messages)
    except CompletionBackendError as e:
        raise HTTPException(status_code=502, detail=str(e))

    # aclose releases the backend connection even if the client leaves before the first event.
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        background=BackgroundTask(stream.aclose),
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
