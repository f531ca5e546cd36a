from __future__ import annotations

"""Identity resolution: authenticated caller -> stable player record.

The upstream auth layer hands us an opaque subject (plus optional display
metadata). The first authenticated action for an unknown subject creates the
player row; later actions reuse it. Players are never deleted.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import NOT_AUTHENTICATED, PLAYER_NOT_FOUND, NotAuthenticatedError, NotFoundError
from game_repo import new_id, player_row_to_dict, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_PLAYER_NAME = "Anonymous"


@dataclass(frozen=True, slots=True)
class Identity:
    subject: str
    name: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "subject", str(self.subject or "").strip())


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.subject:
        raise NotAuthenticatedError(NOT_AUTHENTICATED, "Not authenticated")
    return identity


def find_player(cur: sqlite3.Cursor, identity: Identity) -> Optional[Dict[str, Any]]:
    row = cur.execute(
        "SELECT * FROM players WHERE auth_subject=? LIMIT 1;",
        (identity.subject,),
    ).fetchone()
    return player_row_to_dict(row) if row else None


def require_player(cur: sqlite3.Cursor, identity: Optional[Identity]) -> Dict[str, Any]:
    """Existing player for this identity (no lazy creation)."""
    ident = require_identity(identity)
    player = find_player(cur, ident)
    if player is None:
        raise NotFoundError(PLAYER_NOT_FOUND, "Player not found", {"subject": ident.subject})
    return player


def resolve_player(cur: sqlite3.Cursor, identity: Optional[Identity]) -> Dict[str, Any]:
    """Get or create the player for this identity, inside the caller's transaction."""
    ident = require_identity(identity)
    player = find_player(cur, ident)
    if player is not None:
        return player

    now = utc_now_iso()
    player_id = new_id("player")
    # INSERT OR IGNORE: a concurrent first contact for the same subject must not fail.
    cur.execute(
        """
        INSERT OR IGNORE INTO players(player_id, auth_subject, name, email, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        (
            player_id,
            ident.subject,
            (ident.name or "").strip() or DEFAULT_PLAYER_NAME,
            (ident.email or "").strip(),
            now,
            now,
        ),
    )
    player = find_player(cur, ident)
    if player is None:  # pragma: no cover
        raise RuntimeError(f"failed to create player for subject={ident.subject!r}")
    if player["player_id"] == player_id:
        logger.info("player created: player_id=%s", player_id)
    return player
