from __future__ import annotations

"""Draft engine orchestration.

This module ties together:
  - pool: the pure DraftPool state machine
  - ai:   bot pick policy
  - GameRepo: the SQLite SSOT

Every mutation is one `BEGIN IMMEDIATE` unit:
  read game + pool -> validate -> mutate in memory -> compare-and-set write.

The completing pick flips the game `draft -> generating` inside the same unit
(guarded on phase='draft'). Only the caller whose transaction performed that
flip gets trigger_generation=True, which is what makes world generation
at-most-once per draft.
"""

import logging
import random
import sqlite3
from typing import Any, Dict, Iterable, Optional

from errors import (
    DRAFT_POOL_NOT_FOUND,
    GAME_NOT_FOUND,
    NOT_IN_GAME,
    STALE_WRITE,
    WRONG_PHASE,
    ConflictError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from game_repo import GameRepo, game_row_to_dict, json_dumps, pool_row_to_dict, utc_now_iso
from identity import Identity, resolve_player

from .ai import DraftAIContext, DraftAIPolicy, RandomPickPolicy
from .pool import DraftPool
from .types import PlayerId, Seats

logger = logging.getLogger(__name__)


# ------------------------
# Cursor-level helpers (caller owns the transaction)
# ------------------------

def load_game(cur: sqlite3.Cursor, game_id: str) -> Dict[str, Any]:
    row = cur.execute("SELECT * FROM games WHERE game_id=? LIMIT 1;", (str(game_id),)).fetchone()
    if not row:
        raise NotFoundError(GAME_NOT_FOUND, "Game not found", {"game_id": game_id})
    return game_row_to_dict(row)


def load_pool(cur: sqlite3.Cursor, game_id: str) -> DraftPool:
    row = cur.execute("SELECT * FROM draft_pools WHERE game_id=? LIMIT 1;", (str(game_id),)).fetchone()
    if not row:
        raise NotFoundError(DRAFT_POOL_NOT_FOUND, "Draft pool not found", {"game_id": game_id})
    return DraftPool.from_dict(pool_row_to_dict(row))


def insert_pool(cur: sqlite3.Cursor, pool: DraftPool) -> None:
    now = utc_now_iso()
    cur.execute(
        """
        INSERT INTO draft_pools(
            game_id, words_json, player1_picks_json, player2_picks_json,
            current_picker, version, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, 0, ?, ?);
        """,
        (
            pool.game_id,
            json_dumps(pool.words),
            json_dumps(pool.player1_picks),
            json_dumps(pool.player2_picks),
            pool.current_picker,
            now,
            now,
        ),
    )
    pool.version = 0


def write_pool(cur: sqlite3.Cursor, pool: DraftPool) -> None:
    """Compare-and-set write keyed on pool.version; bumps the version on success."""
    cur.execute(
        """
        UPDATE draft_pools
        SET words_json=?,
            player1_picks_json=?,
            player2_picks_json=?,
            current_picker=?,
            version=version + 1,
            updated_at=?
        WHERE game_id=? AND version=?;
        """,
        (
            json_dumps(pool.words),
            json_dumps(pool.player1_picks),
            json_dumps(pool.player2_picks),
            pool.current_picker,
            utc_now_iso(),
            pool.game_id,
            int(pool.version),
        ),
    )
    if cur.rowcount != 1:
        raise ConflictError(
            STALE_WRITE,
            "The draft changed while you were acting; please retry",
            {"game_id": pool.game_id, "expected_version": int(pool.version)},
        )
    pool.version = int(pool.version) + 1


def seats_of(game: Dict[str, Any]) -> Seats:
    return Seats(player1=str(game["player1"]), player2=game.get("player2"))


def _require_draft_phase(game: Dict[str, Any]) -> None:
    if game["phase"] != "draft":
        raise PreconditionError(
            WRONG_PHASE,
            "Draft is not open for this game",
            {"phase": game["phase"]},
        )


def _apply_pick(cur: sqlite3.Cursor, game: Dict[str, Any], pool: DraftPool, player_id: PlayerId, word: str) -> Dict[str, Any]:
    seats = seats_of(game)
    result = pool.pick(player_id, word, seats)
    write_pool(cur, pool)

    trigger_generation = False
    if result.draft_complete:
        cur.execute(
            "UPDATE games SET phase='generating', updated_at=? WHERE game_id=? AND phase='draft';",
            (utc_now_iso(), pool.game_id),
        )
        trigger_generation = cur.rowcount == 1
        logger.info(
            "draft complete: game_id=%s p1=%d p2=%d remaining=%d trigger_generation=%s",
            pool.game_id,
            len(pool.player1_picks),
            len(pool.player2_picks),
            result.remaining_words,
            trigger_generation,
        )

    out = result.to_dict()
    out["trigger_generation"] = bool(trigger_generation)
    out["current_picker"] = pool.current_picker
    return out


# ------------------------
# Operations
# ------------------------

def get_draft_pool(db_path: str, game_id: str) -> Dict[str, Any]:
    with GameRepo(db_path) as repo:
        try:
            return DraftPool.from_dict(repo.get_draft_pool(game_id)).to_dict()
        except KeyError:
            raise NotFoundError(DRAFT_POOL_NOT_FOUND, "Draft pool not found", {"game_id": game_id}) from None


def submit_words(db_path: str, game_id: str, identity: Optional[Identity], words: Iterable[Any]) -> Dict[str, Any]:
    """Append sanitized words to the pool. Words carry no owner once submitted."""
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            player = resolve_player(cur, identity)
            game = load_game(cur, game_id)
            _require_draft_phase(game)
            if not seats_of(game).has(player["player_id"]):
                raise ValidationError(NOT_IN_GAME, "You are not in this game", {"game_id": game_id})

            pool = load_pool(cur, game_id)
            accepted = pool.submit(words)
            write_pool(cur, pool)

    return {"submitted": len(accepted), "words": accepted}


def start_picking(db_path: str, game_id: str, *, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Shuffle the pool and give seat 1 the first pick."""
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            game = load_game(cur, game_id)
            _require_draft_phase(game)
            pool = load_pool(cur, game_id)
            pool.start_picking(seats_of(game), rng=rng)
            write_pool(cur, pool)

    logger.info("picking started: game_id=%s pool_size=%d", game_id, len(pool.words))
    return {"started": True, "current_picker": pool.current_picker, "pool_size": len(pool.words)}


def pick_word(db_path: str, game_id: str, identity: Optional[Identity], word: str) -> Dict[str, Any]:
    """Claim `word` for the caller.

    Returns picked/draft_complete/remaining_words plus trigger_generation, which
    is True only for the single call that moved the game into 'generating'.
    """
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            player = resolve_player(cur, identity)
            game = load_game(cur, game_id)
            pool = load_pool(cur, game_id)
            return _apply_pick(cur, game, pool, player["player_id"], str(word))


def bot_pick(
    db_path: str,
    game_id: str,
    bot_player_id: PlayerId,
    *,
    policy: Optional[DraftAIPolicy] = None,
) -> Dict[str, Any]:
    """Same contract as pick_word; the policy chooses the word."""
    policy = policy or RandomPickPolicy()
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            game = load_game(cur, game_id)
            pool = load_pool(cur, game_id)
            pool.require_turn(bot_player_id)

            seats = seats_of(game)
            ctx = DraftAIContext(
                game_id=str(game_id),
                player_id=bot_player_id,
                own_picks=pool.picks_for(seats, bot_player_id),
                opponent_picks=pool.picks_for(seats, seats.other(bot_player_id)),
            )
            word = policy.choose(list(pool.words), ctx)
            return _apply_pick(cur, game, pool, bot_player_id, word)
