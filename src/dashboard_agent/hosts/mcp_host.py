"""Tool host backed by an MCP server over streamable HTTP."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack
from typing import Any

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from dashboard_agent import __version__
from dashboard_agent.agent.metadata import normalize_object
from dashboard_agent.config import ToolHostConfig
from dashboard_agent.errors import ToolExecutionError
from dashboard_agent.types import EntityMetadata, ResourceInfo, ToolDefinition

logger = logging.getLogger(__name__)

METADATA_TOOL = "get_object"


class McpToolHost:
    """Keeps one MCP session open and mirrors its tool and resource catalog."""

    def __init__(self, config: ToolHostConfig | None = None) -> None:
        self.config = config or ToolHostConfig()
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._tools: dict[str, ToolDefinition] = {}
        self._resources: dict[str, ResourceInfo] = {}

    async def connect(self) -> bool:
        logger.info("Connecting to MCP server at %s", self.config.server_url)
        stack = AsyncExitStack()
        try:
            read, write, _ = await stack.enter_async_context(
                streamablehttp_client(self.config.server_url)
            )
            session = await stack.enter_async_context(
                ClientSession(
                    read,
                    write,
                    client_info=Implementation(name=self.config.client_name, version=__version__),
                )
            )
            await session.initialize()
        except Exception as exc:
            logger.error("Failed to connect to MCP server: %s", exc)
            await stack.aclose()
            return False

        self._stack = stack
        self._session = session
        await self.discover_capabilities()
        return True

    async def discover_capabilities(self) -> None:
        if self._session is None:
            return
        try:
            tools = await self._session.list_tools()
            self._tools = {
                tool.name: ToolDefinition(
                    name=tool.name,
                    description=tool.description or "",
                    input_schema=dict(tool.inputSchema or {}),
                )
                for tool in tools.tools
            }
            logger.info("Discovered %d MCP tools: %s", len(self._tools), list(self._tools))

            resources = await self._session.list_resources()
            self._resources = {
                str(resource.uri): ResourceInfo(
                    uri=str(resource.uri),
                    name=resource.name,
                    description=resource.description,
                    mime_type=resource.mimeType,
                )
                for resource in resources.resources
            }
            logger.info("Discovered %d MCP resources", len(self._resources))
        except Exception as exc:
            logger.error("Failed to discover MCP capabilities: %s", exc)

    async def disconnect(self) -> None:
        if self._stack is not None:
            try:
                await self._stack.aclose()
                logger.info("Disconnected from MCP server")
            except Exception as exc:
                logger.error("Error disconnecting from MCP server: %s", exc)
        self._stack = None
        self._session = None
        self._tools.clear()
        self._resources.clear()

    def is_connected(self) -> bool:
        return self._session is not None

    def list_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def list_resources(self) -> list[ResourceInfo]:
        return list(self._resources.values())

    def supports_metadata(self) -> bool:
        return self.is_connected() and METADATA_TOOL in self._tools

    async def call_tool(self, name: str, payload: dict[str, Any]) -> Any:
        if self._session is None:
            raise ToolExecutionError(name, "MCP client not connected")
        if name not in self._tools:
            raise ToolExecutionError(name, f"Tool '{name}' not available")

        try:
            result = await self._session.call_tool(name, arguments=payload or {})
        except Exception as exc:
            raise ToolExecutionError(name, str(exc)) from exc

        content = [block.model_dump(mode="json", exclude_none=True) for block in result.content]
        if result.isError:
            raise ToolExecutionError(name, _content_text(content) or "Tool reported an error")
        return content

    async def resolve_metadata(self, state_id: str) -> EntityMetadata | None:
        if METADATA_TOOL not in self._tools:
            return None
        content = await self.call_tool(METADATA_TOOL, {"id": state_id})
        text = _content_text(content)
        raw = json.loads(text) if text else None
        return normalize_object(state_id, raw if isinstance(raw, dict) else None, source="enhanced")


def _content_text(content: list[dict[str, Any]]) -> str:
    return "\n".join(str(block.get("text", "")) for block in content if block.get("type") == "text")
