import asyncio
from typing import Any

from pydantic import BaseModel

from dashboard_agent.agent.history import HistoryStore
from dashboard_agent.agent.orchestrator import Orchestrator, QueryState
from dashboard_agent.agent.registry import ToolRegistry, ToolSpec
from dashboard_agent.config import AgentConfig
from dashboard_agent.hosts.directory import InMemoryEntityDirectory
from dashboard_agent.obs.tracing import TraceStore
from dashboard_agent.types import BackendReply, ChatTurn, DashboardContext, ToolDefinition, ToolInvocationRequest


class _ScriptedBackend:
    """Returns queued replies and records every request."""

    def __init__(self, *replies: BackendReply | Exception) -> None:
        self.replies = list(replies)
        self.requests: list[dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        tools: list[ToolDefinition] | None,
        turns: list[ChatTurn],
    ) -> BackendReply:
        self.requests.append({"system_prompt": system_prompt, "tools": tools, "turns": list(turns)})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class _SlowBackend:
    async def complete(self, system_prompt, tools, turns) -> BackendReply:
        await asyncio.sleep(5)
        return _text_reply("late")


class StateInput(BaseModel):
    id: str


def _text_reply(text: str) -> BackendReply:
    return BackendReply(text_blocks=[text], content=[{"type": "text", "text": text}])


def _tool_reply(*calls: tuple[str, str, dict[str, Any]]) -> BackendReply:
    reply = BackendReply(text_blocks=["Checking."], content=[{"type": "text", "text": "Checking."}])
    for call_id, name, payload in calls:
        reply.tool_invocations.append(ToolInvocationRequest(id=call_id, name=name, input=payload))
        reply.content.append({"type": "tool_use", "id": call_id, "name": name, "input": payload})
    return reply


def _tools() -> ToolRegistry:
    registry = ToolRegistry()

    def _get_state(data: StateInput) -> dict[str, Any]:
        return {"id": data.id, "val": 21.5}

    def _broken(data: StateInput) -> str:
        raise ValueError(f"adapter offline for {data.id}")

    registry.register(ToolSpec(name="get_state", description="Read a state", args_schema=StateInput, handler=_get_state))
    registry.register(ToolSpec(name="broken", description="Always fails", args_schema=StateInput, handler=_broken))
    return registry


def test_plain_reply_is_parsed_and_recorded() -> None:
    backend = _ScriptedBackend(_text_reply("Creating the group.\nCommands to run:\n- add-group Energy"))
    history = HistoryStore()
    orchestrator = Orchestrator(backend=backend, history=history)

    outcome = asyncio.run(orchestrator.process_query("make an energy group"))

    assert outcome.success is True
    assert outcome.commands == ["add-group Energy"]
    assert outcome.explanation == "Creating the group."
    assert outcome.tool_results == []
    assert orchestrator.state is QueryState.DONE
    assert [turn.content for turn in history.turns()] == [
        "make an energy group",
        "Creating the group.\nCommands to run:\n- add-group Energy",
    ]
    assert len(backend.requests) == 1
    assert backend.requests[0]["tools"] is None


def test_failing_tool_does_not_abort_the_round() -> None:
    backend = _ScriptedBackend(
        _tool_reply(("t1", "get_state", {"id": "a.0.b"}), ("t2", "broken", {"id": "c.0.d"})),
        _text_reply("State a.0.b is 21.5."),
    )
    orchestrator = Orchestrator(backend=backend, tool_host=_tools())

    outcome = asyncio.run(orchestrator.process_query("what is a.0.b"))

    assert outcome.success is True
    assert outcome.response == "State a.0.b is 21.5."
    assert len(backend.requests) == 2

    second_turns = backend.requests[1]["turns"]
    assistant_turn, first_result, second_result = second_turns[-3:]
    assert assistant_turn.role == "assistant"
    assert [block["type"] for block in assistant_turn.content] == ["text", "tool_use", "tool_use"]

    [ok_block] = first_result.content
    assert ok_block["tool_use_id"] == "t1"
    assert "is_error" not in ok_block
    assert '"val": 21.5' in ok_block["content"]

    [error_block] = second_result.content
    assert error_block["tool_use_id"] == "t2"
    assert error_block["is_error"] is True
    assert error_block["content"].startswith("Error: ")
    assert "adapter offline" in error_block["content"]

    assert [record.tool for record in outcome.tool_results] == ["get_state", "broken"]
    assert outcome.tool_results[0].result == {"id": "a.0.b", "val": 21.5}
    assert outcome.tool_results[1].is_error


def test_second_round_of_tool_requests_is_ignored() -> None:
    backend = _ScriptedBackend(
        _tool_reply(("t1", "get_state", {"id": "a.0.b"})),
        _tool_reply(("t2", "get_state", {"id": "a.0.c"})),
    )
    orchestrator = Orchestrator(backend=backend, tool_host=_tools())

    outcome = asyncio.run(orchestrator.process_query("loop please"))

    assert outcome.success is True
    assert outcome.response == "Checking."
    assert len(backend.requests) == 2
    assert len(outcome.tool_results) == 1


def test_backend_failure_leaves_history_untouched() -> None:
    history = HistoryStore()
    history.append([ChatTurn(role="user", content="earlier"), ChatTurn(role="assistant", content="ok")])
    orchestrator = Orchestrator(backend=_ScriptedBackend(RuntimeError("529 overloaded")), history=history)

    outcome = asyncio.run(orchestrator.process_query("anything"))

    assert outcome.success is False
    assert outcome.error == "AI processing failed: 529 overloaded"
    assert orchestrator.state is QueryState.FAILED
    assert history.length() == 2


def test_backend_timeout_is_a_backend_error() -> None:
    config = AgentConfig(request_timeout_seconds=0.01)
    orchestrator = Orchestrator(backend=_SlowBackend(), config=config)

    outcome = asyncio.run(orchestrator.process_query("hello"))

    assert outcome.success is False
    assert "timed out" in (outcome.error or "")
    assert orchestrator.history.length() == 0


def test_missing_backend_short_circuits() -> None:
    orchestrator = Orchestrator(backend=None)

    outcome = asyncio.run(orchestrator.process_query("hello"))

    assert outcome.success is False
    assert "ANTHROPIC_API_KEY" in (outcome.error or "")
    assert orchestrator.trace_store.get(outcome.trace_id or "").success is False


def test_metadata_is_appended_but_history_keeps_raw_input() -> None:
    directory = InMemoryEntityDirectory(
        {"modbus.2.holdingRegisters.temp": {"common": {"type": "number", "role": "value.temperature", "unit": "°C"}}}
    )
    backend = _ScriptedBackend(_text_reply("Use a gauge."))
    orchestrator = Orchestrator(
        backend=backend,
        directory=directory,
        context_provider=lambda: DashboardContext(connected=True, groups=[], total_elements=0, commands=[]),
    )

    user_input = "add modbus.2.holdingRegisters.temp to my dashboard"
    asyncio.run(orchestrator.process_query(user_input))

    sent = backend.requests[0]["turns"][-1].content
    assert sent.startswith(user_input)
    assert "State metadata found:" in sent
    assert "- modbus.2.holdingRegisters.temp: type=number, role=value.temperature, unit=°C" in sent
    assert "Can access ioBroker metadata: true" in backend.requests[0]["system_prompt"]
    assert orchestrator.history.turns()[0].content == user_input


def test_history_is_sent_with_the_next_query() -> None:
    backend = _ScriptedBackend(_text_reply("first answer"), _text_reply("second answer"))
    orchestrator = Orchestrator(backend=backend)

    asyncio.run(orchestrator.process_query("first"))
    asyncio.run(orchestrator.process_query("second"))

    assert [turn.content for turn in backend.requests[1]["turns"]] == ["first", "first answer", "second"]
    orchestrator.clear_history()
    assert orchestrator.history.length() == 0


def test_injected_empty_history_is_kept() -> None:
    history = HistoryStore()
    trace_store = TraceStore()
    orchestrator = Orchestrator(
        backend=_ScriptedBackend(_text_reply("hi")),
        history=history,
        trace_store=trace_store,
    )

    asyncio.run(orchestrator.process_query("hello"))

    assert orchestrator.history is history
    assert orchestrator.trace_store is trace_store
    assert history.length() == 2
    assert len(trace_store.list_recent()) == 1


def test_local_tools_add_no_metadata_block() -> None:
    backend = _ScriptedBackend(_text_reply("Adding it."))
    orchestrator = Orchestrator(backend=backend, tool_host=_tools())

    outcome = asyncio.run(orchestrator.process_query("add mqtt.0.power please"))

    assert outcome.success is True
    request = backend.requests[0]
    assert request["turns"][-1].content == "add mqtt.0.power please"
    assert [tool.name for tool in request["tools"]] == ["get_state", "broken"]
    assert "Local dashboard tools only" in request["system_prompt"]
    assert "enhanced ioBroker tools" not in request["system_prompt"]
    assert orchestrator.trace_store.get(outcome.trace_id or "").metadata_lookups == 1


def test_context_failures_degrade_to_unavailable() -> None:
    def _broken_context() -> DashboardContext:
        raise RuntimeError("dashboard offline")

    backend = _ScriptedBackend(_text_reply("Try again later."))
    orchestrator = Orchestrator(backend=backend, context_provider=_broken_context)

    outcome = asyncio.run(orchestrator.process_query("list my groups"))

    assert outcome.success is True
    assert orchestrator.state is QueryState.DONE
    assert "- Groups: unavailable" in backend.requests[0]["system_prompt"]
    assert orchestrator.trace_store.get(outcome.trace_id or "").success is True
