"""Bounded conversation history."""

from __future__ import annotations

from collections.abc import Iterable

from dashboard_agent.types import ChatTurn


class HistoryStore:
    """Ordered log of chat turns capped at `max_turns` entries.

    One store belongs to one session. Overflow drops the oldest turns.
    """

    def __init__(self, max_turns: int = 20) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be positive")
        self.max_turns = max_turns
        self._turns: list[ChatTurn] = []

    def append(self, turns: Iterable[ChatTurn]) -> None:
        self._turns.extend(turns)
        excess = len(self._turns) - self.max_turns
        if excess > 0:
            self._turns = self._turns[excess:]

    def clear(self) -> None:
        self._turns = []

    def length(self) -> int:
        return len(self._turns)

    def turns(self) -> list[ChatTurn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
