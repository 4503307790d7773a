"""Chat orchestrator: keyword gate → detection call → tool → final call → stream.

One request, strictly sequential::

    messages ──► with_system_message
                   │
                   ├─ gate says no ─────────────► streaming chat call ──► transcode
                   │
                   └─ gate says yes ─► detection call (grammar, non-streaming)
                                          │
                                          ├─ not a known ``name()`` ──► raw output, single shot
                                          │
                                          └─ Matched ─► invoke tool ─► augmented prompt
                                                          │
                                                          ├─ final call ok ──► transcode
                                                          └─ final call fails ► fallback text, single shot

Failures of the detection call or the plain chat call propagate as
``CompletionBackendError`` before anything is streamed.  A failure of the
final call is absorbed into the fallback branch because the tool result is
already in hand.  Nothing here retries.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from pi_concierge.application.fallback import fallback_message
from pi_concierge.application.gating import needs_tool
from pi_concierge.application.ports import CompletionClient, ToolInvoker
from pi_concierge.application.prompt import (
    augment_with_tool_result,
    build_system_message,
    format_prompt,
    with_system_message,
)
from pi_concierge.application.tool_calls import parse_tool_call
from pi_concierge.application.transcoder import EventStream, single_shot_stream, transcode_stream
from pi_concierge.config.constants import MAX_TOOL_RESULT_LOG_CHARS
from pi_concierge.config.schema import ConciergeConfig, SamplingConfig
from pi_concierge.domain import (
    CompletionBackendError,
    DetectionOutcome,
    Fallback,
    FinalOutcome,
    Matched,
    Message,
    NoMatch,
    NoToolNeeded,
    Streamed,
)

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Runs one chat request against a completion backend and a tool set.

    Args:
        completion_client: ``CompletionClient`` for the llama.cpp server.
        tools: ``ToolInvoker`` holding the deployment's tools; read-only.
        config: Sampling profiles, stop sequences, gate keywords and persona.
        load_grammar: Returns the GBNF text for the detection call.  Called once
            per detection round.
    """

    def __init__(
        self,
        completion_client: CompletionClient,
        tools: ToolInvoker,
        config: ConciergeConfig,
        load_grammar: Callable[[], str],
    ) -> None:
        self._client = completion_client
        self._tools = tools
        self._config = config
        self._load_grammar = load_grammar
        self._system_message = build_system_message(
            tools.definitions, config.assistant_name, config.system_prompt_intro,
        )

    @property
    def system_message(self) -> Message:
        return self._system_message

    def prepare(self, messages: Sequence[Message]) -> List[Message]:
        """Caller's history with exactly one (our) system message in front."""
        return with_system_message(messages, self._system_message)

    def _payload(
        self,
        messages: Sequence[Message],
        sampling: SamplingConfig,
        *,
        stream: bool,
        grammar: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prompt": format_prompt(messages),
            "n_predict": sampling.n_predict,
            "temperature": sampling.temperature,
            "stream": stream,
        }
        if grammar is not None:
            payload["grammar"] = grammar
        if stream:
            payload["stop"] = list(self._config.stop)
        if sampling.cache_prompt is not None:
            payload["cache_prompt"] = sampling.cache_prompt
        return payload

    async def detect(self, conversation: Sequence[Message]) -> DetectionOutcome:
        """Decide whether the latest turn is answered by a tool."""
        gating = self._config.gating
        if not needs_tool(conversation, gating.keywords, gating.exclusions):
            logger.info("Normal conversation; no tool check needed")
            return NoToolNeeded()

        grammar = self._load_grammar()
        logger.info("Checking for tool call with grammar")
        data = await self._client.complete(
            self._payload(conversation, self._config.detection, stream=False, grammar=grammar)
        )
        output = str(data.get("content") or "").strip()
        logger.info("Detection output: %r", output)

        name = parse_tool_call(output)
        if name is None or name not in self._tools:
            logger.info("No valid tool call detected")
            return NoMatch(text=output)
        logger.info("Tool call detected: %s", name)
        return Matched(name=name, raw_call=output)

    async def answer_with_tool(
        self, conversation: Sequence[Message], call: Matched,
    ) -> FinalOutcome:
        """Run the tool, then ask the model to explain its result."""
        result = await self._tools.invoke(call.name)
        logger.debug("Tool %s result: %s", call.name, result[:MAX_TOOL_RESULT_LOG_CHARS])

        augmented = augment_with_tool_result(conversation, call.raw_call, result)
        payload = self._payload(augmented, self._config.tool_answer, stream=True)
        try:
            chunks = await self._client.open_stream(payload)
        except CompletionBackendError as e:
            logger.warning("Final completion call failed (%s); answering from tool result", e)
            return Fallback(text=fallback_message(result))
        return Streamed(chunks=chunks)

    async def respond(self, messages: Sequence[Message]) -> EventStream:
        """Return the SSE stream answering *messages*.

        All backend work that can fail the request happens before this
        returns; the returned iterator only relays.
        """
        conversation = self.prepare(messages)
        outcome = await self.detect(conversation)

        if isinstance(outcome, NoToolNeeded):
            chunks = await self._client.open_stream(
                self._payload(conversation, self._config.chat, stream=True)
            )
            return transcode_stream(chunks)

        if isinstance(outcome, NoMatch):
            return single_shot_stream(outcome.text)

        final = await self.answer_with_tool(conversation, outcome)
        if isinstance(final, Streamed):
            return transcode_stream(final.chunks)
        return single_shot_stream(final.text)
