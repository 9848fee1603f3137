from __future__ import annotations

import asyncio

from src.services.history import ConversationHistoryStore, ConversationTurn


def _pair(index: int, session_id: str = "s1") -> tuple[ConversationTurn, ConversationTurn]:
    return (
        ConversationTurn(role="user", content=f"question {index}", session_id=session_id),
        ConversationTurn(role="assistant", content=f"answer {index}", session_id=session_id),
    )


def test_window_keeps_most_recent_turns():
    store = ConversationHistoryStore(window_size=4)

    async def scenario():
        for index in range(5):
            await store.append("s1", *_pair(index))

    asyncio.run(scenario())

    window = store.recent("s1")
    assert [turn.content for turn in window] == ["question 3", "answer 3", "question 4", "answer 4"]
    assert len(store.all("s1")) == 10


def test_recent_limit_trims_from_the_front():
    store = ConversationHistoryStore()
    asyncio.run(store.append("s1", *_pair(0), *_pair(1)))

    assert [turn.content for turn in store.recent("s1", limit=2)] == ["question 1", "answer 1"]
    assert store.recent("s1", limit=0) == []


def test_sessions_are_isolated():
    store = ConversationHistoryStore()

    async def scenario():
        await store.append("a", *_pair(0, "a"))
        await store.append("b", *_pair(1, "b"))
        await store.clear("a")

    asyncio.run(scenario())

    assert store.all("a") == []
    assert [turn.content for turn in store.all("b")] == ["question 1", "answer 1"]


def test_missing_session_id_uses_default():
    store = ConversationHistoryStore()
    asyncio.run(store.append(None, *_pair(0, "default")))

    assert len(store.all("default")) == 2
    assert len(store.all()) == 2


def test_concurrent_appends_keep_pairs_together():
    store = ConversationHistoryStore(window_size=100)

    async def scenario():
        await asyncio.gather(*(store.append("s1", *_pair(index)) for index in range(20)))

    asyncio.run(scenario())

    turns = store.all("s1")
    assert len(turns) == 40
    for user_turn, assistant_turn in zip(turns[::2], turns[1::2]):
        assert user_turn.role == "user"
        assert assistant_turn.role == "assistant"
        assert user_turn.content.split()[-1] == assistant_turn.content.split()[-1]


def test_clear_all_empties_every_session():
    store = ConversationHistoryStore()

    async def scenario():
        await store.append("a", *_pair(0, "a"))
        await store.append("b", *_pair(1, "b"))
        await store.clear_all()

    asyncio.run(scenario())

    assert store.all("a") == [] and store.all("b") == []


def test_turn_serialization_uses_camel_case():
    turn = ConversationTurn(role="assistant", content="Done.", session_id="s1", tools_called=["get_all_houses"])

    data = turn.to_dict()

    assert data["sessionId"] == "s1"
    assert data["toolsCalled"] == ["get_all_houses"]
    assert "userId" not in data
    assert turn.to_message() == {"role": "assistant", "content": "Done."}


def test_session_locks_are_released_after_use():
    store = ConversationHistoryStore()

    async def scenario():
        await asyncio.gather(*(store.append(f"s{index}", *_pair(index, f"s{index}")) for index in range(500)))
        assert store._locks == {}
        await store.clear_all()

    asyncio.run(scenario())

    assert store._locks == {}
    assert store.all("s1") == []
