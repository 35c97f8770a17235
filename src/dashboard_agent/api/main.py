"""FastAPI entrypoint for query/command/trace endpoints."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from dashboard_agent import __version__
from dashboard_agent.agent.backend import ChatBackend, LangChainChatBackend, create_chat_model
from dashboard_agent.agent.history import HistoryStore
from dashboard_agent.agent.orchestrator import Orchestrator
from dashboard_agent.agent.registry import ToolRegistry
from dashboard_agent.agent.tools import register_dashboard_tools
from dashboard_agent.commands.builtin import register_builtin_commands
from dashboard_agent.commands.registry import CommandRegistry
from dashboard_agent.config import AgentConfig, DirectoryConfig, SequencerConfig, ToolHostConfig
from dashboard_agent.dashboard import Dashboard
from dashboard_agent.execution.sequencer import ExecutionSequencer, MessageLog, Reporter
from dashboard_agent.hosts.directory import SimpleApiEntityDirectory
from dashboard_agent.hosts.mcp_host import McpToolHost
from dashboard_agent.obs.tracing import TraceStore
from dashboard_agent.parsing.tokenizer import tokenize
from dashboard_agent.types import DashboardContext

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    question: str = Field(min_length=1)
    execute: bool = True


class CommandRequest(BaseModel):
    command: str = Field(min_length=1)


_agent_config = AgentConfig()
_sequencer_config = SequencerConfig.immediate()
_dashboard = Dashboard()

_mcp_url = os.getenv("MCP_SERVER_URL")
_mcp_host = McpToolHost(ToolHostConfig(server_url=_mcp_url)) if _mcp_url else None
_local_tools = ToolRegistry()
register_dashboard_tools(_local_tools, _dashboard)

_iobroker_url = os.getenv("IOBROKER_URL")
_directory = SimpleApiEntityDirectory(DirectoryConfig(base_url=_iobroker_url)) if _iobroker_url else None

_llm = create_chat_model(_agent_config)


def build_orchestrator(backend: ChatBackend | None) -> Orchestrator:
    """Wire an orchestrator to this process's dashboard, tool host and directory."""
    orchestrator = Orchestrator(
        backend=backend,
        history=HistoryStore(_agent_config.max_history_turns),
        tool_host=_mcp_host or _local_tools,
        directory=_directory,
        trace_store=TraceStore(),
        config=_agent_config,
    )
    orchestrator.context_provider = lambda: _snapshot(orchestrator)
    return orchestrator


def _build_commands(reporter: Reporter, orchestrator: Orchestrator) -> CommandRegistry:
    registry = CommandRegistry(reporter)
    register_builtin_commands(registry, _dashboard, reporter, clear_history=orchestrator.clear_history)
    return registry


def _snapshot(orchestrator: Orchestrator) -> DashboardContext:
    status = _dashboard.status()
    return DashboardContext(
        connected=_dashboard.connected,
        groups=_dashboard.group_infos(),
        total_elements=status["total_elements"],
        commands=_build_commands(MessageLog(), orchestrator).infos(),
    )


_orchestrator = build_orchestrator(LangChainChatBackend(_llm) if _llm is not None else None)


def get_orchestrator() -> Orchestrator:
    return _orchestrator


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if _mcp_host is not None:
        await _mcp_host.connect()
    if _directory is not None:
        _dashboard.connected = await _directory.connect()
    try:
        yield
    finally:
        if _mcp_host is not None:
            await _mcp_host.disconnect()
        if _directory is not None:
            await _directory.close()


app = FastAPI(title="Dashboard Assistant", version=__version__, lifespan=lifespan)


@app.get("/health")
def health(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    return {
        "status": "ok",
        "llm_configured": orchestrator.is_available(),
        "tool_host": "mcp" if _mcp_host is not None else "local",
        "tool_host_connected": orchestrator.has_tool_host(),
        "metadata_lookups": orchestrator.enricher.capability().value,
        "history_length": orchestrator.history.length(),
        "trace_count": len(orchestrator.trace_store.list_recent(limit=1000)),
    }


@app.post("/query")
async def query(
    request: QueryRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        outcome = await orchestrator.process_query(request.question)
        messages = MessageLog()
        if request.execute:
            sequencer = ExecutionSequencer(
                _build_commands(messages, orchestrator), messages, _sequencer_config
            )
            await sequencer.run(outcome)
    except Exception as exc:
        logger.exception("Query handling failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    payload = asdict(outcome)
    payload["messages"] = [asdict(message) for message in messages.messages]
    return payload


@app.post("/commands")
async def run_command(
    request: CommandRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    args = tokenize(request.command)
    if not args:
        raise HTTPException(status_code=400, detail="Empty command")

    messages = MessageLog()
    handled = await _build_commands(messages, orchestrator).submit(args[0].lower(), args[1:])
    if not handled:
        messages.error(f"Unknown command: {args[0]}")
    return {
        "handled": handled,
        "messages": [asdict(message) for message in messages.messages],
    }


@app.delete("/history")
def clear_history(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    orchestrator.clear_history()
    return {"history_length": orchestrator.history.length()}


@app.get("/traces")
def traces(limit: int = 20, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    records = [asdict(record) for record in orchestrator.trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    try:
        record = orchestrator.trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    return orchestrator.trace_store.summary()
