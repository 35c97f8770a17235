"""Per-query tracing and aggregate metrics."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from dashboard_agent.types import ToolTrace


@dataclass(slots=True)
class QueryTrace:
    trace_id: str
    timestamp_utc: str
    user_input: str
    response: str | None
    success: bool
    error: str | None
    tool_traces: list[ToolTrace]
    command_count: int
    metadata_lookups: int
    latency_ms: float


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self, max_records: int = 500) -> None:
        self._records: dict[str, QueryTrace] = {}
        self._max_records = max_records

    def create_record(
        self,
        *,
        user_input: str,
        response: str | None,
        success: bool,
        error: str | None,
        tool_traces: list[ToolTrace],
        command_count: int,
        metadata_lookups: int,
        latency_ms: float,
    ) -> QueryTrace:
        trace_id = str(uuid.uuid4())
        record = QueryTrace(
            trace_id=trace_id,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            user_input=user_input,
            response=response,
            success=success,
            error=error,
            tool_traces=tool_traces,
            command_count=command_count,
            metadata_lookups=metadata_lookups,
            latency_ms=latency_ms,
        )
        self._records[trace_id] = record
        while len(self._records) > self._max_records:
            del self._records[next(iter(self._records))]
        return record

    def get(self, trace_id: str) -> QueryTrace:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[QueryTrace]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate core observability metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "failed_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "total_tool_calls": 0,
                "failed_tool_calls": 0,
                "total_commands": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        tool_traces = [trace for record in records for trace in record.tool_traces]

        return {
            "total_requests": total,
            "failed_requests": sum(1 for record in records if not record.success),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "total_tool_calls": len(tool_traces),
            "failed_tool_calls": sum(1 for trace in tool_traces if trace.is_error),
            "total_commands": sum(record.command_count for record in records),
        }


class Timer:
    """Simple context timer used by the orchestrator."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
