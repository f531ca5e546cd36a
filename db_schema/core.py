# db_schema/core.py
"""SQLite SSOT schema: players and games.

This module contains *only* DDL and schema migrations.
It must not import GameRepo (to avoid circular imports).
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Mapping


# Signature compatible with GameRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for core tables (as a single executescript string)."""
    return f"""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                INSERT INTO meta(key, value) VALUES ('schema_version', '{schema_version}')
                ON CONFLICT(key) DO UPDATE SET value=excluded.value;
                INSERT OR IGNORE INTO meta(key, value) VALUES ('created_at', '{now}');

                -- Players are created lazily from the external auth subject.
                CREATE TABLE IF NOT EXISTS players (
                    player_id TEXT PRIMARY KEY,
                    auth_subject TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT 'Anonymous',
                    email TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS uq_players_auth_subject ON players(auth_subject);

                -- Game sessions.
                -- phase: waiting -> draft -> generating -> play (never regresses)
                -- player2 / world_* are written at most once (guarded UPDATEs).
                CREATE TABLE IF NOT EXISTS games (
                    game_id TEXT PRIMARY KEY,
                    player1 TEXT NOT NULL,
                    player2 TEXT,
                    phase TEXT NOT NULL DEFAULT 'waiting',
                    turn_phase TEXT,
                    status TEXT NOT NULL DEFAULT 'waiting',
                    current_turn TEXT,
                    player1_life INTEGER NOT NULL DEFAULT 100,
                    player2_life INTEGER,
                    world_name TEXT,
                    world_description TEXT,
                    resource_types_json TEXT,
                    winner TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(player1) REFERENCES players(player_id),
                    FOREIGN KEY(player2) REFERENCES players(player_id),
                    CHECK (phase IN ('waiting', 'draft', 'generating', 'play')),
                    CHECK (status IN ('waiting', 'active', 'finished'))
                );

                CREATE INDEX IF NOT EXISTS idx_games_status ON games(status);
                CREATE INDEX IF NOT EXISTS idx_games_player1 ON games(player1);
                CREATE INDEX IF NOT EXISTS idx_games_player2 ON games(player2);
"""


def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    """Optional post-DDL migrations for core tables.

    Currently no-op (initial version).
    """
    _ = (cur, ensure_columns)
    return
