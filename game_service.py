from __future__ import annotations

"""Game session lifecycle.

phase: waiting -> draft -> generating -> play (never regresses)

- create_game: player1 + empty draft pool, one transaction
- join_game:   waiting -> draft (player2 written at most once)
- apply_world: generating -> play together with the world fields
  (draft -> generating is owned by draft.engine)
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import config
from draft.engine import insert_pool, load_game
from draft.pool import DraftPool
from errors import (
    GAME_FULL,
    GAME_NOT_FOUND,
    SELF_JOIN,
    WORLD_ALREADY_SET,
    ConflictError,
    NotFoundError,
    SelfJoinError,
)
from game_repo import GameRepo, json_dumps, new_id, utc_now_iso
from identity import Identity, find_player, require_identity, require_player, resolve_player

logger = logging.getLogger(__name__)


def insert_game(
    cur,
    *,
    player1: str,
    player2: Optional[str] = None,
    phase: str = "waiting",
    status: str = "waiting",
) -> str:
    """Insert a game row and its draft pool (caller owns the transaction)."""
    game_id = new_id("game")
    now = utc_now_iso()
    cur.execute(
        """
        INSERT INTO games(
            game_id, player1, player2, phase, status,
            player1_life, player2_life, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
        """,
        (
            game_id,
            str(player1),
            player2,
            phase,
            status,
            config.STARTING_LIFE,
            (config.STARTING_LIFE if player2 else None),
            now,
            now,
        ),
    )
    insert_pool(cur, DraftPool(game_id=game_id))
    return game_id


def create_game(db_path: str, identity: Optional[Identity]) -> str:
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            player = resolve_player(cur, identity)
            game_id = insert_game(cur, player1=player["player_id"])

    logger.info("game created: game_id=%s player1=%s", game_id, player["player_id"])
    return game_id


def join_game(db_path: str, game_id: str, identity: Optional[Identity]) -> str:
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            player = resolve_player(cur, identity)
            game = load_game(cur, game_id)
            if game["player2"]:
                raise ConflictError(GAME_FULL, "Game is full", {"game_id": game_id})
            if game["player1"] == player["player_id"]:
                raise SelfJoinError(SELF_JOIN, "Cannot join your own game", {"game_id": game_id})

            cur.execute(
                """
                UPDATE games
                SET player2=?, player2_life=?, phase='draft', status='active', updated_at=?
                WHERE game_id=? AND player2 IS NULL AND phase='waiting';
                """,
                (player["player_id"], config.STARTING_LIFE, utc_now_iso(), str(game_id)),
            )
            if cur.rowcount != 1:
                raise ConflictError(GAME_FULL, "Game is full", {"game_id": game_id})

    logger.info("game joined: game_id=%s player2=%s", game_id, player["player_id"])
    return str(game_id)


def apply_world(
    cur,
    game_id: str,
    *,
    world_name: str,
    world_description: str,
    resource_types: Sequence[str],
) -> Dict[str, Any]:
    """generating -> play, written together with the world fields.

    Guarded on phase='generating' so the world is set at most once and a game
    is never observed in play without world data.
    """
    game = load_game(cur, game_id)
    cur.execute(
        """
        UPDATE games
        SET world_name=?,
            world_description=?,
            resource_types_json=?,
            phase='play',
            turn_phase='draw',
            current_turn=player1,
            updated_at=?
        WHERE game_id=? AND phase='generating';
        """,
        (
            str(world_name),
            str(world_description),
            json_dumps([str(x) for x in resource_types]),
            utc_now_iso(),
            str(game_id),
        ),
    )
    if cur.rowcount != 1:
        raise ConflictError(
            WORLD_ALREADY_SET,
            "World generation already finished for this game",
            {"game_id": game_id, "phase": game["phase"]},
        )
    logger.info("world applied: game_id=%s world_name=%r", game_id, world_name)
    return load_game(cur, game_id)


# ------------------------
# Queries
# ------------------------

def _player_public(repo: GameRepo, player_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not player_id:
        return None
    try:
        p = repo.get_player(player_id)
    except KeyError:
        return None
    return {"player_id": p["player_id"], "name": p["name"]}


def get_game(db_path: str, game_id: str) -> Dict[str, Any]:
    with GameRepo(db_path) as repo:
        try:
            game = repo.get_game(game_id)
        except KeyError:
            raise NotFoundError(GAME_NOT_FOUND, "Game not found", {"game_id": game_id}) from None
        game["player1_data"] = _player_public(repo, game["player1"])
        game["player2_data"] = _player_public(repo, game["player2"])
        return game


def list_open_games(db_path: str) -> List[Dict[str, Any]]:
    with GameRepo(db_path) as repo:
        games = repo.list_games_by_status("waiting")
        for g in games:
            g["player1_data"] = _player_public(repo, g["player1"])
        return games


def my_games(db_path: str, identity: Optional[Identity]) -> List[Dict[str, Any]]:
    """Unfinished games where the caller is a participant (empty for unknown callers)."""
    ident = require_identity(identity)
    with GameRepo(db_path) as repo:
        player = repo.find_player_by_subject(ident.subject)
        if player is None:
            return []
        return [g for g in repo.list_games_for_player(player["player_id"]) if g["status"] != "finished"]


def get_my_role(db_path: str, game_id: str, identity: Optional[Identity]) -> Optional[Dict[str, Any]]:
    ident = require_identity(identity)
    with GameRepo(db_path) as repo:
        try:
            game = repo.get_game(game_id)
        except KeyError:
            raise NotFoundError(GAME_NOT_FOUND, "Game not found", {"game_id": game_id}) from None
        with repo.transaction() as cur:
            player = find_player(cur, ident)
    if player is None:
        return None
    pid = player["player_id"]
    if game["player1"] == pid:
        return {"role": "player1", "player_id": pid}
    if game["player2"] == pid:
        return {"role": "player2", "player_id": pid}
    return None


def player_for(db_path: str, identity: Optional[Identity]) -> Dict[str, Any]:
    """Existing player for the caller (no lazy creation)."""
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            return require_player(cur, identity)
