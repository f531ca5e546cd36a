# game_repo.py
# Developer note:
# - SQLite DB is the single source of truth (SSOT) for players/games/draft pools/cards.
# - No game state is cached in process memory; every request opens its own GameRepo.
# - Mutations that read-validate-write must run inside transaction(immediate=True).
"""
GameRepository: persisted-data SSOT (SQLite)

Usage (CLI):
  python game_repo.py init --db <db_path>
  python game_repo.py validate --db <db_path>
  python game_repo.py drain-images --db <db_path>

Python:
  from game_repo import GameRepo
  with GameRepo("<db_path>") as repo:
      repo.init_db()
      game = repo.get_game(game_id)
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

import config

SCHEMA_VERSION = "1"

logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


# ----------------------------
# Helpers
# ----------------------------

def _warn_limited(code: str, msg: str, *, limit: int = 5) -> None:
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg)
    _WARN_COUNTS[code] = n + 1


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


def json_dumps(obj: Any) -> str:
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


def json_loads(value: Any, default: Any):
    """
    Safe JSON loader:
    - None -> default
    - already dict/list -> returns as-is
    - invalid JSON -> default
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        _warn_limited("JSON_DECODE_FAILED", f"value_preview={repr(str(value))[:120]}", limit=3)
        return default


def _str_list(value: Any) -> List[str]:
    raw = json_loads(value, default=[])
    if not isinstance(raw, list):
        return []
    return [str(x) for x in raw]


# ----------------------------
# Row decoders
# ----------------------------

def player_row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "player_id": str(row["player_id"]),
        "auth_subject": str(row["auth_subject"]),
        "name": str(row["name"] or "Anonymous"),
        "email": str(row["email"] or ""),
        "created_at": row["created_at"],
    }


def game_row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    resource_types = json_loads(row["resource_types_json"], default=None)
    if resource_types is not None:
        resource_types = [str(x) for x in resource_types] if isinstance(resource_types, list) else None
    return {
        "game_id": str(row["game_id"]),
        "player1": str(row["player1"]),
        "player2": row["player2"],
        "phase": str(row["phase"]),
        "turn_phase": row["turn_phase"],
        "status": str(row["status"]),
        "current_turn": row["current_turn"],
        "player1_life": int(row["player1_life"]),
        "player2_life": (int(row["player2_life"]) if row["player2_life"] is not None else None),
        "world_name": row["world_name"],
        "world_description": row["world_description"],
        "resource_types": resource_types,
        "winner": row["winner"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def pool_row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "game_id": str(row["game_id"]),
        "words": _str_list(row["words_json"]),
        "player1_picks": _str_list(row["player1_picks_json"]),
        "player2_picks": _str_list(row["player2_picks_json"]),
        "current_picker": row["current_picker"],
        "version": int(row["version"]),
    }


def card_row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    abilities = json_loads(row["abilities_json"], default=[])
    return {
        "card_id": str(row["card_id"]),
        "game_id": str(row["game_id"]),
        "owner_id": str(row["owner_id"]),
        "name": str(row["name"]),
        "card_type": str(row["card_type"]),
        "mana_cost": str(row["mana_cost"]),
        "abilities": abilities if isinstance(abilities, list) else [],
        "power": row["power"],
        "toughness": row["toughness"],
        "flavor_text": str(row["flavor_text"] or ""),
        "image_url": row["image_url"],
        "location": str(row["location"]),
        "tapped": bool(row["tapped"]),
        "created_at": row["created_at"],
    }


# ----------------------------
# Repository
# ----------------------------

class GameRepo:
    def __init__(self, db_path: str | Path, *, timeout_s: Optional[float] = None):
        self.db_path = str(db_path)
        busy = config.DB_BUSY_TIMEOUT_S if timeout_s is None else float(timeout_s)
        self._conn = sqlite3.connect(self.db_path, timeout=busy)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("PRAGMA journal_mode = WAL;")
        # Nested transaction support (SAVEPOINT) for callers that compose repo methods.
        # (SQLite raises if BEGIN is issued while a transaction is already active.)
        self._savepoint_seq = 0

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            logger.warning("sqlite close failed: db_path=%s", self.db_path, exc_info=True)

    @contextlib.contextmanager
    def transaction(self, *, immediate: bool = False):
        """
        Atomic transaction helper.

        immediate=True takes the database write lock at BEGIN, so a
        read-validate-write sequence cannot interleave with another writer.
        Draft/join/world mutations always use it.

        Supports nesting via SAVEPOINT:
        - outermost: BEGIN [IMMEDIATE] ... COMMIT/ROLLBACK
        - nested: SAVEPOINT ... RELEASE (or ROLLBACK TO + RELEASE on error)
        """
        cur = self._conn.cursor()
        nested = bool(getattr(self._conn, "in_transaction", False))
        sp_name = None
        try:
            if nested:
                self._savepoint_seq += 1
                sp_name = f"sp_{self._savepoint_seq}"
                cur.execute(f"SAVEPOINT {sp_name};")
            else:
                self._conn.execute("BEGIN IMMEDIATE;" if immediate else "BEGIN;")

            yield cur

            if nested and sp_name:
                cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            else:
                self._conn.commit()
        except Exception:
            if nested and sp_name:
                # Roll back to the savepoint only; do NOT rollback the outer transaction here.
                try:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {sp_name};")
                finally:
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            else:
                self._conn.rollback()
            raise
        finally:
            cur.close()

    # ------------------------
    # Schema
    # ------------------------

    def _ensure_table_columns(self, cur: sqlite3.Cursor, table: str, columns: Mapping[str, str]) -> None:
        """SQLite has no ADD COLUMN IF NOT EXISTS; check PRAGMA first."""
        rows = cur.execute(f"PRAGMA table_info({table});").fetchall()
        existing = {r["name"] for r in rows}
        for col, ddl in columns.items():
            if col in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl};")

    def init_db(self) -> None:
        """Apply SQLite schema (DDL + migrations) via db_schema."""
        from db_schema import apply_schema

        now = utc_now_iso()
        with self.transaction() as cur:
            apply_schema(
                cur,
                now=now,
                schema_version=SCHEMA_VERSION,
                ensure_columns=self._ensure_table_columns,
            )

    # ------------------------
    # Reads
    # ------------------------

    def get_player(self, player_id: str) -> Dict[str, Any]:
        row = self._conn.execute("SELECT * FROM players WHERE player_id=?", (str(player_id),)).fetchone()
        if not row:
            raise KeyError(f"player not found: {player_id}")
        return player_row_to_dict(row)

    def find_player_by_subject(self, auth_subject: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT * FROM players WHERE auth_subject=?",
            (str(auth_subject),),
        ).fetchone()
        return player_row_to_dict(row) if row else None

    def get_game(self, game_id: str) -> Dict[str, Any]:
        row = self._conn.execute("SELECT * FROM games WHERE game_id=?", (str(game_id),)).fetchone()
        if not row:
            raise KeyError(f"game not found: {game_id}")
        return game_row_to_dict(row)

    def get_draft_pool(self, game_id: str) -> Dict[str, Any]:
        row = self._conn.execute("SELECT * FROM draft_pools WHERE game_id=?", (str(game_id),)).fetchone()
        if not row:
            raise KeyError(f"draft pool not found: {game_id}")
        return pool_row_to_dict(row)

    def list_games_by_status(self, status: str) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT * FROM games WHERE status=? ORDER BY created_at ASC, game_id ASC;",
            (str(status),),
        ).fetchall()
        return [game_row_to_dict(r) for r in rows]

    def list_games_for_player(self, player_id: str) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            """
            SELECT * FROM games
            WHERE player1=? OR player2=?
            ORDER BY created_at ASC, game_id ASC;
            """,
            (str(player_id), str(player_id)),
        ).fetchall()
        return [game_row_to_dict(r) for r in rows]

    def get_card(self, card_id: str) -> Dict[str, Any]:
        row = self._conn.execute("SELECT * FROM cards WHERE card_id=?", (str(card_id),)).fetchone()
        if not row:
            raise KeyError(f"card not found: {card_id}")
        return card_row_to_dict(row)

    def list_cards(
        self,
        game_id: str,
        *,
        location: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM cards WHERE game_id=?"
        params: List[Any] = [str(game_id)]
        if location is not None:
            sql += " AND location=?"
            params.append(str(location))
        if owner_id is not None:
            sql += " AND owner_id=?"
            params.append(str(owner_id))
        sql += " ORDER BY created_at ASC, card_id ASC;"
        rows = self._conn.execute(sql, tuple(params)).fetchall()
        return [card_row_to_dict(r) for r in rows]

    def get_card_image(self, card_id: str) -> Dict[str, Any]:
        row = self._conn.execute(
            "SELECT card_id, mime_type, data FROM card_images WHERE card_id=?",
            (str(card_id),),
        ).fetchone()
        if not row:
            raise KeyError(f"card image not found: {card_id}")
        return {"card_id": str(row["card_id"]), "mime_type": str(row["mime_type"]), "data": bytes(row["data"])}

    def get_image_job(self, job_id: str) -> Dict[str, Any]:
        row = self._conn.execute("SELECT * FROM image_jobs WHERE job_id=?", (str(job_id),)).fetchone()
        if not row:
            raise KeyError(f"image job not found: {job_id}")
        return dict(row)

    def list_image_job_ids(
        self,
        *,
        statuses: Sequence[str] = ("pending",),
        stale_running_before: Optional[str] = None,
    ) -> List[str]:
        """Job ids in `statuses`, plus running jobs last touched before `stale_running_before`."""
        clauses: List[str] = []
        params: List[Any] = []
        if statuses:
            marks = ",".join("?" for _ in statuses)
            clauses.append(f"status IN ({marks})")
            params.extend(str(s) for s in statuses)
        if stale_running_before is not None:
            clauses.append("(status='running' AND updated_at < ?)")
            params.append(str(stale_running_before))
        if not clauses:
            return []
        where = " OR ".join(clauses)
        rows = self._conn.execute(
            f"SELECT job_id FROM image_jobs WHERE {where} ORDER BY created_at ASC, job_id ASC;",
            tuple(params),
        ).fetchall()
        return [str(r["job_id"]) for r in rows]

    # ------------------------
    # Integrity
    # ------------------------

    def validate_integrity(self) -> None:
        """Check persisted invariants. Raises ValueError listing every violation."""
        problems: List[str] = []

        for g in (game_row_to_dict(r) for r in self._conn.execute("SELECT * FROM games;").fetchall()):
            gid = g["game_id"]
            if g["phase"] == "play" and (not g["world_description"] or not g["resource_types"]):
                problems.append(f"game {gid}: phase=play without world data")
            if g["phase"] != "waiting" and not g["player2"]:
                problems.append(f"game {gid}: phase={g['phase']} without player2")
            if g["player2"] and g["player2"] == g["player1"]:
                problems.append(f"game {gid}: player1 == player2")

        pools = self._conn.execute(
            """
            SELECT d.*, g.player1 AS g_player1, g.player2 AS g_player2
            FROM draft_pools d
            JOIN games g ON g.game_id = d.game_id;
            """
        ).fetchall()
        for r in pools:
            picker = r["current_picker"]
            if picker is not None and picker not in (r["g_player1"], r["g_player2"]):
                problems.append(f"draft_pool {r['game_id']}: current_picker is not a participant")

        missing_pool = self._conn.execute(
            "SELECT g.game_id FROM games g LEFT JOIN draft_pools d ON d.game_id = g.game_id WHERE d.game_id IS NULL;"
        ).fetchall()
        for r in missing_pool:
            problems.append(f"game {r['game_id']}: missing draft pool")

        for c in (card_row_to_dict(r) for r in self._conn.execute("SELECT * FROM cards;").fetchall()):
            has_stats = c["power"] is not None and c["toughness"] is not None
            if (c["card_type"] == "creature") != has_stats:
                problems.append(f"card {c['card_id']}: power/toughness must be present iff creature")

        if problems:
            raise ValueError("integrity check failed:\n- " + "\n- ".join(problems))

    # ------------------------
    # Convenience
    # ------------------------

    def __enter__(self) -> "GameRepo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ----------------------------
# CLI
# ----------------------------

def _cmd_init(args) -> None:
    with GameRepo(args.db) as repo:
        repo.init_db()
    print(f"OK: initialized {args.db}")


def _cmd_validate(args) -> None:
    with GameRepo(args.db) as repo:
        repo.validate_integrity()
    print(f"OK: validation passed for {args.db}")


def _cmd_drain_images(args) -> None:
    # Local import: the generation client pulls in google.generativeai.
    from gemini.client import GeminiClient
    from image_jobs import run_pending_image_jobs

    with GameRepo(args.db) as repo:
        repo.init_db()
    results = run_pending_image_jobs(str(args.db), client=GeminiClient.from_config())
    print(f"OK: processed {len(results)} image job(s): {results}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="GameRepo (SQLite single source of truth)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="initialize DB schema")
    p_init.add_argument("--db", required=True, help="path to sqlite db file")
    p_init.set_defaults(func=_cmd_init)

    p_val = sub.add_parser("validate", help="validate DB integrity")
    p_val.add_argument("--db", required=True, help="path to sqlite db file")
    p_val.set_defaults(func=_cmd_validate)

    p_img = sub.add_parser("drain-images", help="run pending card image jobs")
    p_img.add_argument("--db", required=True, help="path to sqlite db file")
    p_img.set_defaults(func=_cmd_drain_images)

    args = p.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
