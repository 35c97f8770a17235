import pytest

from dashboard_agent.agent.history import HistoryStore
from dashboard_agent.types import ChatTurn


def _turns(start: int, count: int) -> list[ChatTurn]:
    return [
        ChatTurn(role="user" if i % 2 == 0 else "assistant", content=f"turn-{i}")
        for i in range(start, start + count)
    ]


def test_overflow_keeps_most_recent_suffix() -> None:
    store = HistoryStore(max_turns=20)
    everything: list[ChatTurn] = []
    for batch in range(13):
        turns = _turns(batch * 2, 2)
        everything.extend(turns)
        store.append(turns)

    assert store.length() == 20
    assert store.turns() == everything[-20:]


def test_single_large_append_is_truncated_from_the_front() -> None:
    store = HistoryStore(max_turns=3)
    store.append(_turns(0, 5))

    assert len(store) == 3
    assert [turn.content for turn in store.turns()] == ["turn-2", "turn-3", "turn-4"]


def test_clear_empties_the_log() -> None:
    store = HistoryStore()
    store.append(_turns(0, 4))
    store.clear()

    assert store.length() == 0
    assert store.turns() == []


def test_turns_returns_a_copy() -> None:
    store = HistoryStore()
    store.append(_turns(0, 2))
    store.turns().append(ChatTurn(role="user", content="sneaky"))

    assert store.length() == 2


def test_non_positive_limit_rejected() -> None:
    with pytest.raises(ValueError):
        HistoryStore(max_turns=0)
