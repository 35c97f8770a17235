"""Error taxonomy for the query pipeline.

Only `BackendUnavailable` and `AIBackendError` end a query. The remaining
errors are caught where they occur and folded back into the conversation or
the command batch.
"""

from __future__ import annotations


class DashboardAgentError(Exception):
    """Base class for all pipeline errors."""


class BackendUnavailable(DashboardAgentError):
    """No credentials or model configured for the LLM backend."""


class AIBackendError(DashboardAgentError):
    """A backend request failed or timed out."""


class ToolExecutionError(DashboardAgentError):
    """A single tool invocation failed."""

    def __init__(self, tool: str, message: str) -> None:
        super().__init__(message)
        self.tool = tool


class MetadataResolutionError(DashboardAgentError):
    """A single entity-reference lookup failed."""

    def __init__(self, state_id: str, message: str) -> None:
        super().__init__(message)
        self.state_id = state_id


class NoBackendAvailable(MetadataResolutionError):
    """Neither the tool host nor the entity directory is reachable."""

    def __init__(self, state_id: str) -> None:
        super().__init__(state_id, "No ioBroker connection available")


class UnrecognizedCommand(DashboardAgentError):
    """The command interpreter rejected a command."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command from AI: {name}")
        self.name = name
