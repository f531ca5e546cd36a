"""SQLite SSOT schema: generated cards and card art.

Tables:
- cards: generated card records (owner, location, tapped flag)
- card_images: image bytes per card (written by image jobs only)
- image_jobs: deferred image-generation queue entries

Design notes:
- A card row is committed before its image job is enqueued; the job never
  touches any card column except image_url.
- abilities_json holds the tagged ability variants (mechanicId + typed params).
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Iterable, Mapping

from cards.types import CARD_TYPES, LOCATIONS


# Signature compatible with GameRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def _sql_in(values: Iterable[str]) -> str:
    return ", ".join(f"'{v}'" for v in values)


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for card tables."""
    _ = (now, schema_version)
    return f"""
                CREATE TABLE IF NOT EXISTS cards (
                    card_id TEXT PRIMARY KEY,
                    game_id TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    card_type TEXT NOT NULL,
                    mana_cost TEXT NOT NULL,
                    abilities_json TEXT NOT NULL DEFAULT '[]',
                    power INTEGER,
                    toughness INTEGER,
                    flavor_text TEXT NOT NULL DEFAULT '',
                    image_url TEXT,
                    location TEXT NOT NULL DEFAULT 'hand',
                    tapped INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(game_id) REFERENCES games(game_id) ON DELETE CASCADE,
                    FOREIGN KEY(owner_id) REFERENCES players(player_id),
                    CHECK (card_type IN ({_sql_in(CARD_TYPES)})),
                    CHECK (location IN ({_sql_in(LOCATIONS)}))
                );

                CREATE INDEX IF NOT EXISTS idx_cards_game ON cards(game_id);
                CREATE INDEX IF NOT EXISTS idx_cards_owner ON cards(owner_id);
                CREATE INDEX IF NOT EXISTS idx_cards_game_location ON cards(game_id, location);

                CREATE TABLE IF NOT EXISTS card_images (
                    card_id TEXT PRIMARY KEY,
                    mime_type TEXT NOT NULL DEFAULT 'image/png',
                    data BLOB NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(card_id) REFERENCES cards(card_id) ON DELETE CASCADE
                );

                -- status: pending -> running -> done | failed (pending again between retries)
                CREATE TABLE IF NOT EXISTS image_jobs (
                    job_id TEXT PRIMARY KEY,
                    card_id TEXT NOT NULL,
                    image_prompt TEXT NOT NULL,
                    world_description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    attempts INTEGER NOT NULL DEFAULT 0,
                    last_error TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(card_id) REFERENCES cards(card_id) ON DELETE CASCADE,
                    CHECK (status IN ('pending', 'running', 'done', 'failed'))
                );

                CREATE INDEX IF NOT EXISTS idx_image_jobs_status ON image_jobs(status);
"""


def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    """Optional post-DDL migrations for card tables.

    Currently no-op (initial version).
    """
    _ = (cur, ensure_columns)
    return
