"""Interfaces of the external collaborators consulted by the pipeline."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from dashboard_agent.types import EntityMetadata, ResourceInfo, ToolDefinition


@runtime_checkable
class ToolHost(Protocol):
    """Catalog of callable tools plus an invocation method."""

    def is_connected(self) -> bool: ...

    def list_tools(self) -> list[ToolDefinition]: ...

    def list_resources(self) -> list[ResourceInfo]: ...

    def supports_metadata(self) -> bool:
        """Whether `resolve_metadata` can answer for ioBroker state IDs."""
        ...

    async def call_tool(self, name: str, payload: dict[str, Any]) -> Any:
        """Run a tool; raises `ToolExecutionError` on failure."""
        ...

    async def resolve_metadata(self, state_id: str) -> EntityMetadata | None: ...


@runtime_checkable
class EntityDirectory(Protocol):
    """Keyed store of raw entity objects."""

    def is_connected(self) -> bool: ...

    async def get_object(self, state_id: str) -> dict[str, Any] | None: ...
