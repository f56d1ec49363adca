from __future__ import annotations

from datetime import timedelta

from hypothesis import given
from hypothesis import strategies as st

from teamchat.domain.entities.typing_indicator import TypingBoard
from tests.conftest import T0


def test_active_lists_oldest_first():
    board = TypingBoard()
    board.refresh(2, "channel:x", T0)
    board.refresh(1, "channel:x", T0 + timedelta(seconds=1))
    board.refresh(3, "channel:y", T0)

    assert board.active("channel:x", T0 + timedelta(seconds=2)) == [2, 1]


def test_refresh_extends_liveness():
    board = TypingBoard(timedelta(seconds=5))
    board.refresh(1, "s", T0)
    board.refresh(1, "s", T0 + timedelta(seconds=4))
    assert board.active("s", T0 + timedelta(seconds=8)) == [1]


def test_clear_only_touches_one_scope():
    board = TypingBoard()
    board.refresh(1, "a", T0)
    board.refresh(1, "b", T0)
    board.refresh(2, "a", T0)

    assert board.clear(1, "a") is True
    assert board.clear(1, "a") is False

    assert board.active("a", T0) == [2]
    assert board.active("b", T0) == [1]


@given(st.floats(min_value=0, max_value=60, allow_nan=False))
def test_indicator_never_reported_past_window(elapsed):
    window = timedelta(seconds=5)
    board = TypingBoard(window)
    board.refresh(1, "s", T0)

    active = board.active("s", T0 + timedelta(seconds=elapsed))

    if timedelta(seconds=elapsed) >= window:
        assert active == []
        assert len(board) == 0
    else:
        assert active == [1]
