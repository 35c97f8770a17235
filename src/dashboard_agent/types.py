"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatTurn:
    """One message in the conversation.

    `content` is plain text, or a list of content blocks for tool-invocation
    (`tool_use`) and tool-result (`tool_result`) turns.
    """

    role: Role
    content: str | list[dict[str, Any]]


@dataclass(slots=True)
class EntityMetadata:
    """Metadata resolved for one entity reference found in user input.

    `source` names the lookup that produced the record (`"enhanced"` or
    `"direct"`). It is `None` when no lookup ran because neither source was
    reachable; such records are kept for tracing but not shown to the backend.
    """

    state_id: str
    exists: bool
    source: str | None = None
    type: str | None = None
    role: str | None = None
    unit: str | None = None
    min: float | None = None
    max: float | None = None
    write: bool | None = None
    name: Any = None
    desc: Any = None
    error: str | None = None


@dataclass(slots=True)
class ToolDefinition:
    """A tool advertised by a tool host."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(slots=True)
class ResourceInfo:
    uri: str
    name: str | None = None
    description: str | None = None
    mime_type: str | None = None


@dataclass(slots=True)
class ToolInvocationRequest:
    """A tool call requested by the backend inside a reply."""

    id: str
    name: str
    input: dict[str, Any]


@dataclass(slots=True)
class ToolExecutionRecord:
    """Outcome of one tool invocation during a tool round."""

    tool: str
    input: dict[str, Any]
    result: Any = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
    is_error: bool = False


@dataclass(slots=True)
class BackendReply:
    """Normalized backend response.

    `content` keeps the raw block list so the reply can be replayed verbatim
    as an assistant turn during a tool round.
    """

    text_blocks: list[str] = field(default_factory=list)
    tool_invocations: list[ToolInvocationRequest] = field(default_factory=list)
    content: list[dict[str, Any]] = field(default_factory=list)

    @property
    def first_text(self) -> str | None:
        return self.text_blocks[0] if self.text_blocks else None


@dataclass(slots=True)
class ParsedReply:
    commands: list[str]
    explanation: str


@dataclass(slots=True)
class QueryOutcome:
    """Terminal result of one orchestrated query."""

    success: bool
    response: str | None = None
    tool_results: list[ToolExecutionRecord] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    explanation: str | None = None
    error: str | None = None
    trace_id: str | None = None


@dataclass(slots=True)
class CommandInfo:
    name: str
    aliases: list[str]
    description: str
    usage: str


@dataclass(slots=True)
class GroupInfo:
    title: str
    element_count: int


@dataclass(slots=True)
class DashboardContext:
    """Snapshot of live state used to render the system prompt.

    Optional fields are `None` when the information could not be collected.
    """

    connected: bool = False
    has_entity_directory: bool = False
    has_tool_host: bool = False
    has_enhanced_tools: bool = False
    groups: list[GroupInfo] | None = None
    total_elements: int | None = None
    commands: list[CommandInfo] | None = None
    tools: list[ToolDefinition] | None = None
    resources: list[ResourceInfo] | None = None
