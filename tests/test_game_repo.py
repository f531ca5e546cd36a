from __future__ import annotations

import sqlite3

import pytest

from cards.types import LOCATIONS
from conftest import ALICE, player_id_of
from game_repo import GameRepo, main
from game_service import create_game


def test_init_db_is_idempotent(db_path):
    with GameRepo(db_path) as repo:
        repo.init_db()
        repo.init_db()
        tables = {r["name"] for r in repo._conn.execute("SELECT name FROM sqlite_master WHERE type='table';")}
    assert {"players", "games", "draft_pools", "cards", "card_images", "image_jobs"} <= tables



def test_ensure_columns_adds_only_missing(db_path):
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            repo._ensure_table_columns(cur, "players", {"name": "TEXT", "rating": "INTEGER"})
            repo._ensure_table_columns(cur, "players", {"rating": "INTEGER"})
        cols = [r["name"] for r in repo._conn.execute("PRAGMA table_info(players);")]
    assert cols.count("rating") == 1
    assert cols.count("name") == 1

def test_nested_transaction_rolls_back_inner_only(db_path):
    game_id = create_game(db_path, ALICE)
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            cur.execute("UPDATE games SET turn_phase='upkeep' WHERE game_id=?;", (game_id,))
            with pytest.raises(RuntimeError):
                with repo.transaction() as inner:
                    inner.execute("UPDATE games SET turn_phase='end' WHERE game_id=?;", (game_id,))
                    raise RuntimeError("inner failure")
        assert repo.get_game(game_id)["turn_phase"] == "upkeep"


def test_validate_integrity_reports_violations(db_path):
    game_id = create_game(db_path, ALICE)
    with GameRepo(db_path) as repo:
        repo.validate_integrity()
        with repo.transaction() as cur:
            cur.execute("UPDATE games SET phase='play' WHERE game_id=?;", (game_id,))
        with pytest.raises(ValueError) as ei:
            repo.validate_integrity()
    msg = str(ei.value)
    assert "without world data" in msg
    assert "without player2" in msg


def test_lookups_raise_key_error(db_path):
    with GameRepo(db_path) as repo:
        for fn in (repo.get_game, repo.get_player, repo.get_card, repo.get_card_image, repo.get_draft_pool):
            with pytest.raises(KeyError):
                fn("missing")


def test_cli_init_and_validate(tmp_path, capsys):
    path = str(tmp_path / "cli.sqlite3")
    main(["init", "--db", path])
    main(["validate", "--db", path])
    out = capsys.readouterr().out
    assert "initialized" in out
    assert "validation passed" in out


def test_card_location_check_follows_vocabulary(db_path):
    game_id = create_game(db_path, ALICE)
    owner = player_id_of(db_path, ALICE)
    insert = (
        "INSERT INTO cards(card_id, game_id, owner_id, name, card_type, mana_cost, location, created_at, updated_at) "
        "VALUES (?, ?, ?, 'Spark', 'instant', '1', ?, 'now', 'now');"
    )
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            for i, location in enumerate(LOCATIONS):
                cur.execute(insert, (f"card_{i}", game_id, owner, location))
        with pytest.raises(sqlite3.IntegrityError):
            with repo.transaction() as cur:
                cur.execute(insert, ("card_bad", game_id, owner, "library"))
