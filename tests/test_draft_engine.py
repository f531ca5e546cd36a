from __future__ import annotations

import threading

import pytest

from conftest import ALICE, BOB, CAROL, player_id_of
from draft.ai import RandomPickPolicy
from draft.engine import bot_pick, get_draft_pool, pick_word, start_picking, submit_words
from errors import (
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    PreconditionError,
    TurnError,
    ValidationError,
)
from game_repo import GameRepo
from game_service import create_game, get_game


def test_submit_requires_draft_phase(db_path):
    game_id = create_game(db_path, ALICE)
    with pytest.raises(PreconditionError):
        submit_words(db_path, game_id, ALICE, ["fire"])


def test_submit_unknown_game(db_path):
    with pytest.raises(NotFoundError):
        submit_words(db_path, "game_missing", ALICE, ["fire"])


def test_submit_by_outsider_is_rejected(db_path, draft_game):
    with pytest.raises(ValidationError):
        submit_words(db_path, draft_game, CAROL, ["fire"])
    assert get_draft_pool(db_path, draft_game)["words"] == []


def test_submit_requires_identity(db_path, draft_game):
    with pytest.raises(NotAuthenticatedError):
        submit_words(db_path, draft_game, None, ["fire"])


def test_submit_sanitizes_and_bumps_version(db_path, draft_game):
    out = submit_words(db_path, draft_game, ALICE, ["  ", "ok", "x" * 60])
    assert out == {"submitted": 1, "words": ["ok"]}
    pool = get_draft_pool(db_path, draft_game)
    assert pool["words"] == ["ok"]
    assert pool["version"] == 1
    assert pool["state"] == "COLLECTING"


def test_start_picking_with_three_words_fails(db_path, draft_game):
    submit_words(db_path, draft_game, ALICE, ["a", "b", "c"])
    with pytest.raises(PreconditionError):
        start_picking(db_path, draft_game)
    assert get_draft_pool(db_path, draft_game)["current_picker"] is None


def test_start_picking_hands_turn_to_player1(db_path, draft_game):
    submit_words(db_path, draft_game, ALICE, ["a", "b"])
    submit_words(db_path, draft_game, BOB, ["c", "d"])
    out = start_picking(db_path, draft_game)
    assert out["current_picker"] == player_id_of(db_path, ALICE)
    assert out["pool_size"] == 4
    with pytest.raises(ConflictError):
        start_picking(db_path, draft_game)


def test_full_draft_triggers_generation_once(db_path, picking_game):
    results = [
        pick_word(db_path, picking_game, ALICE, "a"),
        pick_word(db_path, picking_game, BOB, "b"),
        pick_word(db_path, picking_game, ALICE, "c"),
        pick_word(db_path, picking_game, BOB, "d"),
    ]
    assert [r["trigger_generation"] for r in results] == [False, False, False, True]
    assert results[-1]["draft_complete"] is True

    pool = get_draft_pool(db_path, picking_game)
    assert pool["player1_picks"] == ["a", "c"]
    assert pool["player2_picks"] == ["b", "d"]
    assert pool["current_picker"] is None
    assert get_game(db_path, picking_game)["phase"] == "generating"


def test_pick_after_completion_is_a_turn_error(db_path, picking_game):
    for who, word in [(ALICE, "a"), (BOB, "b"), (ALICE, "c"), (BOB, "d")]:
        pick_word(db_path, picking_game, who, word)
    with pytest.raises(TurnError):
        pick_word(db_path, picking_game, ALICE, "a")


def test_out_of_turn_pick_changes_nothing(db_path, picking_game):
    before = get_draft_pool(db_path, picking_game)
    with pytest.raises(TurnError):
        pick_word(db_path, picking_game, BOB, "a")
    assert get_draft_pool(db_path, picking_game) == before


def test_stale_version_write_is_rejected(db_path, picking_game):
    from draft.engine import load_pool, write_pool

    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            stale = load_pool(cur, picking_game)
    pick_word(db_path, picking_game, ALICE, "a")

    with GameRepo(db_path) as repo:
        with pytest.raises(ConflictError) as ei:
            with repo.transaction(immediate=True) as cur:
                write_pool(cur, stale)
    assert ei.value.code == "STALE_WRITE"


def test_concurrent_same_turn_picks_only_one_wins(db_path, picking_game):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def worker(word):
        barrier.wait()
        try:
            res = pick_word(db_path, picking_game, ALICE, word)
            with lock:
                outcomes.append(("ok", res["picked"]))
        except TurnError:
            with lock:
                outcomes.append(("turn", word))

    threads = [threading.Thread(target=worker, args=(w,)) for w in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(kind for kind, _ in outcomes) == ["ok", "turn"]
    pool = get_draft_pool(db_path, picking_game)
    assert len(pool["player1_picks"]) == 1
    assert len(pool["words"]) == 3
    assert pool["current_picker"] == player_id_of(db_path, BOB)


def test_concurrent_completing_picks_trigger_generation_once(db_path, picking_game):
    pick_word(db_path, picking_game, ALICE, "a")
    pick_word(db_path, picking_game, BOB, "b")
    pick_word(db_path, picking_game, ALICE, "c")

    barrier = threading.Barrier(3)
    triggers = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            res = pick_word(db_path, picking_game, BOB, "d")
            with lock:
                triggers.append(res["trigger_generation"])
        except (TurnError, NotFoundError):
            with lock:
                triggers.append(None)

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert triggers.count(True) == 1
    assert get_game(db_path, picking_game)["phase"] == "generating"


def test_bot_pick_follows_turn_order(db_path, picking_game):
    bob_id = player_id_of(db_path, BOB)
    with pytest.raises(TurnError):
        bot_pick(db_path, picking_game, bob_id)

    pick_word(db_path, picking_game, ALICE, "a")
    out = bot_pick(db_path, picking_game, bob_id, policy=RandomPickPolicy())
    assert out["picked"] in {"b", "c", "d"}
    pool = get_draft_pool(db_path, picking_game)
    assert pool["player2_picks"] == [out["picked"]]
    assert pool["current_picker"] == player_id_of(db_path, ALICE)
