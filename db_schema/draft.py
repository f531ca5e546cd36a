"""SQLite SSOT schema: draft pool.

Tables:
- draft_pools: one row per game (1:1), created in the same transaction as the game

Design notes:
- words / player1_picks / player2_picks are JSON arrays (ordered, duplicates allowed).
- current_picker is NULL before picking starts and after the draft completes.
- version increases on every pool write; writers compare-and-set on it so a stale
  read can never overwrite a newer pool state.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Mapping


# Signature compatible with GameRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for draft tables."""
    _ = (now, schema_version)
    return """
                CREATE TABLE IF NOT EXISTS draft_pools (
                    game_id TEXT PRIMARY KEY,
                    words_json TEXT NOT NULL DEFAULT '[]',
                    player1_picks_json TEXT NOT NULL DEFAULT '[]',
                    player2_picks_json TEXT NOT NULL DEFAULT '[]',
                    current_picker TEXT,
                    version INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(game_id) REFERENCES games(game_id) ON DELETE CASCADE,
                    FOREIGN KEY(current_picker) REFERENCES players(player_id)
                );
"""


def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    """Optional post-DDL migrations for draft tables.

    Currently no-op (initial version).
    """
    _ = (cur, ensure_columns)
    return
