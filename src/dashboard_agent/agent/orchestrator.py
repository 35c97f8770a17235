"""Conversation orchestrator: one user utterance in, one `QueryOutcome` out."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from enum import Enum
from time import perf_counter
from typing import Any

from dashboard_agent.agent.backend import ChatBackend
from dashboard_agent.agent.history import HistoryStore
from dashboard_agent.agent.metadata import MetadataEnricher, render_metadata_block
from dashboard_agent.agent.prompt import build_system_prompt
from dashboard_agent.config import AgentConfig
from dashboard_agent.errors import AIBackendError, BackendUnavailable, ToolExecutionError
from dashboard_agent.hosts.base import EntityDirectory, ToolHost
from dashboard_agent.obs.tracing import Timer, TraceStore
from dashboard_agent.parsing.reply import parse_reply
from dashboard_agent.types import (
    BackendReply,
    ChatTurn,
    DashboardContext,
    EntityMetadata,
    QueryOutcome,
    ToolDefinition,
    ToolExecutionRecord,
    ToolInvocationRequest,
    ToolTrace,
)

logger = logging.getLogger(__name__)

ContextProvider = Callable[[], DashboardContext]

NO_RESPONSE_TEXT = "No response generated."
TOOLS_COMPLETED_TEXT = "Tool execution completed."


class QueryState(Enum):
    IDLE = "idle"
    BUILDING_CONTEXT = "building_context"
    AWAITING_FIRST_REPLY = "awaiting_first_reply"
    TOOL_ROUND = "tool_round"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class Orchestrator:
    """Drives one query through enrichment, the backend and an optional tool round.

    Only one tool round is ever executed: if the reply that follows the tool
    results asks for more tools, those requests are ignored and its text is used
    as the final answer.
    """

    def __init__(
        self,
        *,
        backend: ChatBackend | None,
        history: HistoryStore | None = None,
        tool_host: ToolHost | None = None,
        directory: EntityDirectory | None = None,
        context_provider: ContextProvider | None = None,
        trace_store: TraceStore | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or AgentConfig()
        self.history = history if history is not None else HistoryStore(self.config.max_history_turns)
        self.tool_host = tool_host
        self.enricher = MetadataEnricher(tool_host=tool_host, directory=directory)
        self.context_provider = context_provider
        self.trace_store = trace_store if trace_store is not None else TraceStore()
        self.state = QueryState.IDLE
        self._lock = asyncio.Lock()

    def is_available(self) -> bool:
        return self.backend is not None

    def clear_history(self) -> None:
        self.history.clear()

    def has_tool_host(self) -> bool:
        return self.tool_host is not None and self.tool_host.is_connected()

    def build_context(self) -> DashboardContext:
        """Collect the prompt context; anything that fails to load stays `None`."""
        context = DashboardContext()
        if self.context_provider is not None:
            try:
                context = self.context_provider()
            except Exception:
                logger.exception("Dashboard context unavailable")

        context.has_entity_directory = self.enricher.has_entity_directory()
        context.has_tool_host = self.has_tool_host()
        context.has_enhanced_tools = self.enricher.has_tool_host()
        if context.has_tool_host:
            assert self.tool_host is not None
            try:
                context.tools = self.tool_host.list_tools()
            except Exception:
                logger.exception("Tool catalog unavailable")
            try:
                context.resources = self.tool_host.list_resources()
            except Exception:
                logger.exception("Resource catalog unavailable")
        return context

    async def process_query(self, user_input: str) -> QueryOutcome:
        """Run the full pipeline for one utterance.

        Backend failures produce `success=False` and leave history untouched.
        Tool and metadata failures are folded into the conversation instead.
        """

        async with self._lock:
            tool_traces: list[ToolTrace] = []
            metadata: list[EntityMetadata] = []
            with Timer() as timer:
                try:
                    outcome = await self._run(user_input, metadata, tool_traces)
                except (BackendUnavailable, AIBackendError) as exc:
                    self.state = QueryState.FAILED
                    logger.error("Query failed: %s", exc)
                    outcome = QueryOutcome(success=False, error=str(exc))

            record = self.trace_store.create_record(
                user_input=user_input,
                response=outcome.response,
                success=outcome.success,
                error=outcome.error,
                tool_traces=tool_traces,
                command_count=len(outcome.commands),
                metadata_lookups=len(metadata),
                latency_ms=timer.elapsed_ms,
            )
            outcome.trace_id = record.trace_id
            return outcome

    async def _run(
        self,
        user_input: str,
        metadata: list[EntityMetadata],
        tool_traces: list[ToolTrace],
    ) -> QueryOutcome:
        if self.backend is None:
            raise BackendUnavailable(
                "AI service not available. Set ANTHROPIC_API_KEY environment variable."
            )

        self.state = QueryState.BUILDING_CONTEXT
        context = self.build_context()
        metadata.extend(await self.enricher.enrich(user_input))
        augmented_input = user_input + render_metadata_block(metadata)
        tools = _tool_catalog(context)
        system_prompt = build_system_prompt(context)
        turns = self.history.turns()
        turns.append(ChatTurn(role="user", content=augmented_input))

        self.state = QueryState.AWAITING_FIRST_REPLY
        reply = await self._request(system_prompt, tools, turns)

        tool_results: list[ToolExecutionRecord] = []
        if reply.tool_invocations:
            self.state = QueryState.TOOL_ROUND
            turns.append(ChatTurn(role="assistant", content=list(reply.content)))
            for invocation in reply.tool_invocations:
                record = await self._run_tool(invocation, turns, tool_traces)
                tool_results.append(record)

            final_reply = await self._request(system_prompt, tools, turns)
            if final_reply.tool_invocations:
                logger.info(
                    "Ignoring %d tool request(s) after the tool round",
                    len(final_reply.tool_invocations),
                )
            final_text = final_reply.first_text or TOOLS_COMPLETED_TEXT
        else:
            final_text = reply.first_text or NO_RESPONSE_TEXT

        self.state = QueryState.FINALIZING
        parsed = parse_reply(final_text)
        self.history.append(
            [
                ChatTurn(role="user", content=user_input),
                ChatTurn(role="assistant", content=final_text),
            ]
        )
        self.state = QueryState.DONE
        return QueryOutcome(
            success=True,
            response=final_text,
            tool_results=tool_results,
            commands=parsed.commands,
            explanation=parsed.explanation,
        )

    async def _request(
        self,
        system_prompt: str,
        tools: list[ToolDefinition] | None,
        turns: list[ChatTurn],
    ) -> BackendReply:
        assert self.backend is not None
        timeout = self.config.request_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.backend.complete(system_prompt, tools, list(turns)),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise AIBackendError(f"AI processing failed: request timed out after {timeout}s") from exc
        except Exception as exc:
            raise AIBackendError(f"AI processing failed: {exc}") from exc

    async def _run_tool(
        self,
        invocation: ToolInvocationRequest,
        turns: list[ChatTurn],
        tool_traces: list[ToolTrace],
    ) -> ToolExecutionRecord:
        start = perf_counter()
        try:
            result = await self._call_tool(invocation)
        except ToolExecutionError as exc:
            message = str(exc)
            logger.warning("Tool %s failed: %s", invocation.name, message)
            turns.append(_tool_result_turn(invocation.id, f"Error: {message}", is_error=True))
            tool_traces.append(_trace(invocation, f"Error: {message}", start, is_error=True))
            return ToolExecutionRecord(tool=invocation.name, input=invocation.input, error=message)

        serialized = _serialize(result)
        turns.append(_tool_result_turn(invocation.id, serialized))
        tool_traces.append(_trace(invocation, serialized, start))
        return ToolExecutionRecord(tool=invocation.name, input=invocation.input, result=result)

    async def _call_tool(self, invocation: ToolInvocationRequest) -> Any:
        if self.tool_host is None or not self.tool_host.is_connected():
            raise ToolExecutionError(invocation.name, "Tool host not connected")
        timeout = self.config.tool_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.tool_host.call_tool(invocation.name, invocation.input),
                timeout=timeout,
            )
        except ToolExecutionError:
            raise
        except asyncio.TimeoutError as exc:
            raise ToolExecutionError(invocation.name, f"Tool call timed out after {timeout}s") from exc
        except Exception as exc:
            raise ToolExecutionError(invocation.name, str(exc)) from exc


def _tool_catalog(context: DashboardContext) -> list[ToolDefinition] | None:
    if not context.has_tool_host or not context.tools:
        return None
    return list(context.tools)


def _tool_result_turn(tool_use_id: str, content: str, *, is_error: bool = False) -> ChatTurn:
    block: dict[str, Any] = {"type": "tool_result", "tool_use_id": tool_use_id, "content": content}
    if is_error:
        block["is_error"] = True
    return ChatTurn(role="user", content=[block])


def _serialize(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def _trace(
    invocation: ToolInvocationRequest,
    preview: str,
    start: float,
    *,
    is_error: bool = False,
) -> ToolTrace:
    return ToolTrace(
        name=invocation.name,
        input_payload=invocation.input,
        output_preview=preview[:320],
        latency_ms=(perf_counter() - start) * 1000.0,
        is_error=is_error,
    )
