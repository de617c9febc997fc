"""READY exchange and the first-shooter tie-break."""

from __future__ import annotations

import itertools

import pytest

from salvo.handshake import ReadyHandshake, ReadyState, local_fires_first
from salvo.messages import Ready


def make(nonce: int = 1) -> ReadyHandshake:
    return ReadyHandshake(timeout_ms=10000, resend_ms=500, nonce=nonce)


def test_earlier_opponent_fires_first() -> None:
    hs = make()
    hs.finish(200)
    hs.receive(Ready(100), 210)
    hs.poll(210)
    assert hs.synced
    assert hs.local_first is False


def test_later_opponent_lets_us_fire_first() -> None:
    hs = make()
    hs.finish(200)
    hs.receive(Ready(300), 210)
    hs.poll(210)
    assert hs.local_first is True


def test_legacy_bare_ready_counts_as_zero() -> None:
    hs = make()
    hs.finish(5)
    hs.receive(Ready(0), 6)
    hs.poll(6)
    assert hs.local_first is False


def test_ready_before_local_finish_is_kept() -> None:
    hs = make()
    assert not hs.receive(Ready(900), 10)
    assert hs.state is ReadyState.PLACEMENT
    assert hs.poll(20) is None
    hs.finish(500)
    hs.poll(500)
    assert hs.local_first is True


def test_duplicate_ready_is_idempotent() -> None:
    hs = make()
    hs.finish(200)
    for _ in range(3):
        hs.receive(Ready(100), 220)
    hs.poll(220)
    hs.receive(Ready(100), 230)
    hs.poll(230)
    assert hs.local_first is False
    assert hs.opponent_timestamp == 100


@pytest.mark.parametrize(
    "mine, theirs",
    list(itertools.product([0, 1, 200, 4294967294], [0, 1, 200, 4294967294])),
)
def test_tie_break_is_symmetric_with_nonces(mine: int, theirs: int) -> None:
    a_first = local_fires_first(mine, theirs, 11, 22)
    b_first = local_fires_first(theirs, mine, 22, 11)
    assert a_first != b_first


def test_equal_timestamps_without_nonces_favour_local() -> None:
    assert local_fires_first(200, 200)
    assert local_fires_first(200, 200, 5, None)


def test_unset_timestamp_loses() -> None:
    assert local_fires_first(10, None)
    assert not local_fires_first(None, 10)


def test_timeout_proceeds_as_first_shooter() -> None:
    hs = make()
    hs.finish(1000)
    hs.poll(1000 + 9999)
    assert not hs.synced
    hs.poll(1000 + 10001)
    assert hs.synced
    assert hs.timed_out
    assert hs.local_first is True


def test_ready_is_resent_while_waiting() -> None:
    hs = make(nonce=7)
    first = hs.finish(0)
    assert first == Ready(0, nonce=7)
    assert hs.poll(100) is None
    assert hs.poll(500) == Ready(0, nonce=7)
    assert hs.poll(700) is None
    assert hs.poll(1000) == Ready(0, nonce=7)


def test_late_ready_after_sync_is_answered_within_window() -> None:
    hs = make()
    hs.finish(0)
    hs.poll(10000)
    assert hs.local_first is True
    assert hs.receive(Ready(50), 10600)
    # spaced at least one resend interval apart
    assert not hs.receive(Ready(50), 10700)
    assert hs.receive(Ready(50), 11200)
    hs.note_peer_in_game()
    assert not hs.receive(Ready(50), 12000)


def test_late_ready_is_not_answered_after_window() -> None:
    hs = make()
    hs.finish(0)
    hs.poll(10000)
    assert not hs.receive(Ready(50), 20000)


def test_shot_before_ready_yields_first_shot() -> None:
    hs = make()
    hs.finish(100)
    hs.yield_first_shot(150)
    assert hs.synced
    assert hs.local_first is False
    # a later READY does not overturn the decision
    hs.receive(Ready(999), 200)
    hs.poll(200)
    assert hs.local_first is False


def test_waiting_without_completion_time_is_an_error() -> None:
    hs = make()
    hs.state = ReadyState.WAITING_FOR_OPPONENT
    with pytest.raises(RuntimeError):
        hs.poll(0)
