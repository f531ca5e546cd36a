from __future__ import annotations

import random
from collections import Counter

import pytest

from draft.pool import DraftPool, sanitize_words
from draft.types import STATE_COLLECTING, STATE_COMPLETE, STATE_EMPTY, STATE_PICKING, Seats
from errors import ConflictError, NotFoundError, PreconditionError, TurnError, ValidationError

SEATS = Seats(player1="p1", player2="p2")


def _picking_pool(words):
    pool = DraftPool(game_id="g", words=list(words))
    pool.current_picker = "p1"
    return pool


def test_sanitize_trims_and_drops_empty_and_long():
    assert sanitize_words(["  ", "ok", "x" * 60]) == ["ok"]
    assert sanitize_words(["  spaced  ", "", 3, None]) == ["spaced"]


def test_sanitize_keeps_first_five_survivors():
    words = ["", "a", "b", "x" * 51, "c", "d", "e", "f"]
    assert sanitize_words(words) == ["a", "b", "c", "d", "e"]


def test_sanitize_accepts_exactly_fifty_chars():
    assert sanitize_words(["y" * 50]) == ["y" * 50]


def test_submit_appends_anonymously_and_reports_accepted():
    pool = DraftPool(game_id="g")
    assert pool.state == STATE_EMPTY
    assert pool.submit(["  ", "ok", "x" * 60]) == ["ok"]
    assert pool.submit(["ok", "fire"]) == ["ok", "fire"]
    assert pool.words == ["ok", "ok", "fire"]
    assert pool.state == STATE_COLLECTING


def test_submit_with_nothing_valid_leaves_pool_unchanged():
    pool = DraftPool(game_id="g", words=["keep"])
    with pytest.raises(ValidationError):
        pool.submit(["   ", "x" * 80])
    assert pool.words == ["keep"]


def test_start_picking_needs_four_words():
    pool = DraftPool(game_id="g", words=["a", "b", "c"])
    with pytest.raises(PreconditionError) as ei:
        pool.start_picking(SEATS)
    assert ei.value.code == "POOL_TOO_SMALL"
    assert pool.current_picker is None


def test_start_picking_shuffles_and_seat_one_first():
    pool = DraftPool(game_id="g", words=["a", "b", "c", "d", "e", "f"])
    pool.start_picking(SEATS, rng=random.Random(7))
    assert pool.current_picker == "p1"
    assert sorted(pool.words) == ["a", "b", "c", "d", "e", "f"]
    assert pool.state == STATE_PICKING


def test_start_picking_twice_is_a_conflict():
    pool = DraftPool(game_id="g", words=["a", "b", "c", "d"])
    pool.start_picking(SEATS)
    with pytest.raises(ConflictError):
        pool.start_picking(SEATS)


def test_alternating_picks_example_scenario():
    pool = _picking_pool(["a", "b", "c", "d"])
    r1 = pool.pick("p1", "a", SEATS)
    assert (r1.picked, r1.draft_complete, r1.remaining_words) == ("a", False, 3)
    assert pool.current_picker == "p2"
    pool.pick("p2", "b", SEATS)
    pool.pick("p1", "c", SEATS)
    r4 = pool.pick("p2", "d", SEATS)
    assert r4.draft_complete is True
    assert r4.remaining_words == 0
    assert pool.player1_picks == ["a", "c"]
    assert pool.player2_picks == ["b", "d"]
    assert pool.current_picker is None
    assert pool.state == STATE_COMPLETE


def test_completes_when_both_reach_three_picks():
    pool = _picking_pool(["a", "b", "c", "d", "e", "f", "g", "h"])
    for player, word in [("p1", "a"), ("p2", "b"), ("p1", "c"), ("p2", "d"), ("p1", "e")]:
        assert pool.pick(player, word, SEATS).draft_complete is False
    last = pool.pick("p2", "f", SEATS)
    assert last.draft_complete is True
    assert last.remaining_words == 2
    assert pool.words == ["g", "h"]


def test_exhaustion_completes_with_asymmetric_picks():
    pool = _picking_pool(["a", "b", "c", "d", "e"])
    for player, word in [("p1", "a"), ("p2", "b"), ("p1", "c"), ("p2", "d")]:
        pool.pick(player, word, SEATS)
    last = pool.pick("p1", "e", SEATS)
    assert last.draft_complete is True
    assert pool.player1_picks == ["a", "c", "e"]
    assert pool.player2_picks == ["b", "d"]


def test_out_of_turn_pick_leaves_pool_unchanged():
    pool = _picking_pool(["a", "b", "c", "d"])
    with pytest.raises(TurnError) as ei:
        pool.pick("p2", "a", SEATS)
    assert ei.value.code == "NOT_YOUR_TURN"
    assert pool.words == ["a", "b", "c", "d"]
    assert pool.current_picker == "p1"


def test_outsider_pick_is_a_turn_error():
    pool = _picking_pool(["a", "b", "c", "d"])
    with pytest.raises(TurnError):
        pool.pick("stranger", "a", SEATS)


def test_pick_before_start_and_after_completion():
    pool = DraftPool(game_id="g", words=["a", "b", "c", "d"])
    with pytest.raises(TurnError) as ei:
        pool.pick("p1", "a", SEATS)
    assert ei.value.code == "PICKING_NOT_STARTED"

    done = DraftPool(game_id="g", words=[], player1_picks=["a"], player2_picks=["b"])
    with pytest.raises(TurnError) as ei:
        done.pick("p1", "a", SEATS)
    assert ei.value.code == "DRAFT_COMPLETE"


def test_missing_word_is_not_found():
    pool = _picking_pool(["a", "b", "c", "d"])
    with pytest.raises(NotFoundError):
        pool.pick("p1", "zzz", SEATS)
    assert pool.current_picker == "p1"


def test_pick_removes_a_single_duplicate():
    pool = _picking_pool(["fire", "fire", "ice", "stone"])
    pool.pick("p1", "fire", SEATS)
    assert pool.words == ["fire", "ice", "stone"]
    assert pool.player1_picks == ["fire"]


def test_dict_round_trip_keeps_state_fields():
    pool = _picking_pool(["a", "b", "c", "d"])
    pool.version = 4
    d = pool.to_dict()
    assert d["state"] == STATE_PICKING
    again = DraftPool.from_dict(d)
    assert again == pool


@pytest.mark.parametrize("seed", range(25))
def test_random_drafts_never_lose_or_duplicate_words(seed):
    rng = random.Random(seed)
    vocab = ["ash", "ember", "tide", "moss", "gale", "frost"]
    original = [rng.choice(vocab) for _ in range(rng.randint(4, 12))]

    pool = DraftPool(game_id="g")
    for i in range(0, len(original), 5):
        pool.submit(original[i : i + 5])
    pool.start_picking(SEATS, rng=rng)

    expected_picker = "p1"
    while pool.current_picker:
        assert pool.current_picker == expected_picker
        result = pool.pick(expected_picker, rng.choice(pool.words), SEATS)
        assert Counter(pool.player1_picks + pool.player2_picks + pool.words) == Counter(original)
        assert result.remaining_words == len(pool.words)
        expected_picker = SEATS.other(expected_picker)

    assert pool.is_complete()
    assert Counter(pool.player1_picks + pool.player2_picks + pool.words) == Counter(original)
    assert abs(len(pool.player1_picks) - len(pool.player2_picks)) <= 1
