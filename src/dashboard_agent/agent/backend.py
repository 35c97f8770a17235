"""LLM backend adapter built on LangChain chat models."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Protocol

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from dashboard_agent.config import AgentConfig
from dashboard_agent.types import BackendReply, ChatTurn, ToolDefinition, ToolInvocationRequest


class ChatBackend(Protocol):
    """Request/response service behind the orchestrator."""

    async def complete(
        self,
        system_prompt: str,
        tools: list[ToolDefinition] | None,
        turns: list[ChatTurn],
    ) -> BackendReply: ...


def create_chat_model(
    config: AgentConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> Any:
    """Create a LangChain chat model from environment credentials.

    Returns `None` when no API key is configured.
    """

    config = config or AgentConfig()
    env = os.environ if env is None else env

    anthropic_key = env.get("ANTHROPIC_API_KEY") or env.get("CLAUDE_API_KEY")
    if anthropic_key:
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=env.get("ANTHROPIC_MODEL", config.model),
            api_key=anthropic_key,
            max_tokens=config.max_tokens,
        )

    openai_key = env.get("OPENAI_API_KEY")
    if openai_key:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=env.get("OPENAI_MODEL", "gpt-4o-mini"),
            api_key=openai_key,
            max_tokens=config.max_tokens,
        )
    return None


class LangChainChatBackend:
    """Adapts a LangChain chat model to the `ChatBackend` contract."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    async def complete(
        self,
        system_prompt: str,
        tools: list[ToolDefinition] | None,
        turns: list[ChatTurn],
    ) -> BackendReply:
        runnable = self.llm.bind_tools([_tool_payload(tool) for tool in tools]) if tools else self.llm
        message = await runnable.ainvoke(to_langchain_messages(system_prompt, turns))
        return reply_from_message(message)


def _tool_payload(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.input_schema or {"type": "object", "properties": {}},
        },
    }


def to_langchain_messages(system_prompt: str, turns: list[ChatTurn]) -> list[BaseMessage]:
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    for turn in turns:
        if isinstance(turn.content, str):
            if turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
            else:
                messages.append(HumanMessage(content=turn.content))
            continue

        if turn.role == "assistant":
            text = "\n".join(
                str(block.get("text", "")) for block in turn.content if block.get("type") == "text"
            )
            tool_calls = [
                {"id": block["id"], "name": block["name"], "args": block.get("input") or {}}
                for block in turn.content
                if block.get("type") == "tool_use"
            ]
            messages.append(AIMessage(content=text, tool_calls=tool_calls))
            continue

        for block in turn.content:
            if block.get("type") == "tool_result":
                messages.append(
                    ToolMessage(
                        content=str(block.get("content", "")),
                        tool_call_id=block["tool_use_id"],
                        status="error" if block.get("is_error") else "success",
                    )
                )
            elif block.get("type") == "text":
                messages.append(HumanMessage(content=str(block.get("text", ""))))
    return messages


def reply_from_message(message: Any) -> BackendReply:
    """Normalize a LangChain `AIMessage` into text blocks and tool invocations."""
    reply = BackendReply()
    content = getattr(message, "content", message)

    if isinstance(content, str):
        if content:
            reply.text_blocks.append(content)
    elif isinstance(content, list):
        for item in content:
            if isinstance(item, str):
                reply.text_blocks.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                reply.text_blocks.append(str(item.get("text", "")))
    reply.content.extend({"type": "text", "text": text} for text in reply.text_blocks)

    for index, call in enumerate(getattr(message, "tool_calls", None) or []):
        invocation = ToolInvocationRequest(
            id=str(call.get("id") or f"toolu_{index}"),
            name=str(call["name"]),
            input=dict(call.get("args") or {}),
        )
        reply.tool_invocations.append(invocation)
        reply.content.append(
            {
                "type": "tool_use",
                "id": invocation.id,
                "name": invocation.name,
                "input": invocation.input,
            }
        )
    return reply
