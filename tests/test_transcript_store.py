from __future__ import annotations

import pytest

from scholarflow.services.transcript import (
    InvalidStateError,
    TranscriptStore,
    Turn,
    TurnRole,
    TurnStatus,
    UnknownTurnError,
)


def test_append_keeps_order_and_ids() -> None:
    store = TranscriptStore()
    user = store.append_user("Hi")
    placeholder = store.append_placeholder()

    snapshot = store.snapshot()
    assert [turn.id for turn in snapshot] == [user.id, placeholder.id]
    assert snapshot[0].role is TurnRole.USER
    assert snapshot[0].status is TurnStatus.FINALIZED
    assert snapshot[1].role is TurnRole.ASSISTANT
    assert snapshot[1].is_active
    assert snapshot[1].text == ""
    assert store.active_turn == placeholder
    assert len(store) == 2


def test_fold_fragments_accumulates_text() -> None:
    store = TranscriptStore()
    store.append_user("Hi")
    placeholder = store.append_placeholder()

    store.fold_fragment(placeholder.id, "Hel")
    store.fold_fragment(placeholder.id, "")
    updated = store.fold_fragment(placeholder.id, "lo")

    assert updated.text == "Hello"
    assert updated.id == placeholder.id
    assert store.get(placeholder.id).text == "Hello"


def test_snapshot_is_isolated_from_later_mutations() -> None:
    store = TranscriptStore()
    placeholder = store.append_placeholder()
    before = store.snapshot()

    store.fold_fragment(placeholder.id, "partial")

    assert before[0].text == ""
    assert store.snapshot()[0].text == "partial"


def test_finalize_with_replacement_text() -> None:
    store = TranscriptStore()
    placeholder = store.append_placeholder()
    store.fold_fragment(placeholder.id, "half an answ")

    turn = store.finalize(placeholder.id, "Sorry", status=TurnStatus.FAILED)

    assert turn.text == "Sorry"
    assert turn.status is TurnStatus.FAILED
    assert store.active_turn is None


def test_finalize_twice_is_rejected() -> None:
    store = TranscriptStore()
    placeholder = store.append_placeholder()
    store.finalize(placeholder.id)

    with pytest.raises(InvalidStateError):
        store.finalize(placeholder.id)


def test_finalize_requires_terminal_status() -> None:
    store = TranscriptStore()
    placeholder = store.append_placeholder()

    with pytest.raises(ValueError):
        store.finalize(placeholder.id, status=TurnStatus.ACTIVE)


def test_late_fragment_is_dropped() -> None:
    store = TranscriptStore()
    placeholder = store.append_placeholder()
    store.fold_fragment(placeholder.id, "done")
    store.finalize(placeholder.id)

    result = store.fold_fragment(placeholder.id, " extra")

    assert result.text == "done"
    assert store.get(placeholder.id).text == "done"


def test_unknown_turn_ids_raise() -> None:
    store = TranscriptStore()

    with pytest.raises(UnknownTurnError):
        store.fold_fragment("missing", "text")
    with pytest.raises(UnknownTurnError):
        store.finalize("missing")
    with pytest.raises(UnknownTurnError):
        store.get("missing")


def test_fragments_cannot_target_user_turns() -> None:
    store = TranscriptStore()
    user = store.append_user("Hi")

    with pytest.raises(InvalidStateError):
        store.fold_fragment(user.id, "nope")


def test_only_one_active_turn_allowed() -> None:
    store = TranscriptStore()
    store.append_placeholder()

    with pytest.raises(InvalidStateError):
        store.append_placeholder()


def test_duplicate_ids_and_active_user_turns_rejected() -> None:
    store = TranscriptStore()
    user = store.append_user("Hi")

    with pytest.raises(InvalidStateError):
        store.append(user)
    with pytest.raises(InvalidStateError):
        store.append(Turn(role=TurnRole.USER, text="x", status=TurnStatus.ACTIVE))


def test_listeners_receive_snapshots_and_can_unsubscribe() -> None:
    store = TranscriptStore()
    seen: list[tuple[Turn, ...]] = []
    unsubscribe = store.add_listener(seen.append)

    store.append_user("Hi")
    placeholder = store.append_placeholder()
    store.fold_fragment(placeholder.id, "Hey")
    unsubscribe()
    store.finalize(placeholder.id)

    assert len(seen) == 3
    assert [turn.text for turn in seen[-1]] == ["Hi", "Hey"]


def test_failing_listener_does_not_break_mutation() -> None:
    store = TranscriptStore()

    def broken(_snapshot) -> None:
        raise RuntimeError("boom")

    store.add_listener(broken)
    turn = store.append_user("still stored")

    assert store.snapshot() == (turn,)
