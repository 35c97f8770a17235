"""Configuration models for the dashboard assistant."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Configures the LLM exchange and conversation memory."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = Field(default=1000, ge=1)
    max_history_turns: int = Field(default=20, ge=1)
    request_timeout_seconds: float = Field(default=60.0, gt=0.0)
    tool_timeout_seconds: float = Field(default=30.0, gt=0.0)


class SequencerConfig(BaseModel):
    """Pacing delays used while replaying an answer to the user."""

    line_delay_seconds: float = Field(default=0.1, ge=0.0)
    pre_batch_delay_seconds: float = Field(default=0.2, ge=0.0)
    batch_header_delay_seconds: float = Field(default=0.3, ge=0.0)
    announce_delay_seconds: float = Field(default=0.2, ge=0.0)
    between_commands_delay_seconds: float = Field(default=0.3, ge=0.0)

    @classmethod
    def immediate(cls) -> "SequencerConfig":
        return cls(
            line_delay_seconds=0.0,
            pre_batch_delay_seconds=0.0,
            batch_header_delay_seconds=0.0,
            announce_delay_seconds=0.0,
            between_commands_delay_seconds=0.0,
        )


class ToolHostConfig(BaseModel):
    """Connection settings for the MCP tool host."""

    server_url: str = "http://localhost:8082/mcp"
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    client_name: str = "iobroker-dashboard-cli"


class DirectoryConfig(BaseModel):
    """Connection settings for the ioBroker simple-api entity directory."""

    base_url: str = "http://localhost:8087"
    timeout_seconds: float = Field(default=10.0, gt=0.0)
