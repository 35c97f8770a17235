"""In-process tool host built on Pydantic v2 models."""

from __future__ import annotations

from collections.abc import Callable
from time import perf_counter
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dashboard_agent.errors import ToolExecutionError
from dashboard_agent.types import EntityMetadata, ResourceInfo, ToolDefinition, ToolTrace


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[BaseModel], Any]
    tags: list[str] = Field(default_factory=list)

    def invoke(self, payload: dict[str, Any]) -> Any:
        data = self.args_schema.model_validate(payload)
        return self.handler(data)

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.args_schema.model_json_schema(),
        )


class ToolRegistry:
    """Stores tool specs and serves them through the `ToolHost` interface."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    def execute(self, name: str, payload: dict[str, Any]) -> Any:
        spec = self._tools.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")
        return self._execute_spec(spec, payload)

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def is_connected(self) -> bool:
        return True

    def list_tools(self) -> list[ToolDefinition]:
        return [spec.definition() for spec in self._tools.values()]

    def list_resources(self) -> list[ResourceInfo]:
        return []

    def supports_metadata(self) -> bool:
        return False

    async def call_tool(self, name: str, payload: dict[str, Any]) -> Any:
        try:
            return self.execute(name, payload)
        except KeyError as exc:
            raise ToolExecutionError(name, str(exc.args[0])) from exc
        except ValueError as exc:
            raise ToolExecutionError(name, str(exc)) from exc

    async def resolve_metadata(self, state_id: str) -> EntityMetadata | None:
        return None

    def _execute_spec(self, spec: ToolSpec, payload: dict[str, Any]) -> Any:
        start = perf_counter()
        try:
            output = spec.invoke(payload)
        except Exception as exc:
            self._notify(spec, payload, f"Error: {exc}", start, is_error=True)
            raise
        self._notify(spec, payload, str(output), start)
        return output

    def _notify(
        self,
        spec: ToolSpec,
        payload: dict[str, Any],
        preview: str,
        start: float,
        *,
        is_error: bool = False,
    ) -> None:
        if self._observer is None:
            return
        self._observer(
            ToolTrace(
                name=spec.name,
                input_payload=payload,
                output_preview=preview[:320],
                latency_ms=(perf_counter() - start) * 1000.0,
                is_error=is_error,
            )
        )
