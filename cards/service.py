from __future__ import annotations

"""Card persistence and per-game views.

A generated card is written once (hand, untapped). After that only
`set_card_image` touches it, and only the image reference.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from errors import CARD_IMAGE_NOT_FOUND, CARD_NOT_FOUND, GAME_NOT_FOUND, NotFoundError
from game_repo import GameRepo, card_row_to_dict, json_dumps, new_id, utc_now_iso

from .abilities import GeneratedCard
from .types import DEFAULT_IMAGE_MIME, LOCATION_FIELD, LOCATION_HAND, card_image_url

logger = logging.getLogger(__name__)


def insert_card(cur: sqlite3.Cursor, *, game_id: str, owner_id: str, card: GeneratedCard) -> Dict[str, Any]:
    card_id = new_id("card")
    now = utc_now_iso()
    cur.execute(
        """
        INSERT INTO cards(
            card_id, game_id, owner_id, name, card_type, mana_cost, abilities_json,
            power, toughness, flavor_text, image_url, location, tapped, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, 0, ?, ?);
        """,
        (
            card_id,
            str(game_id),
            str(owner_id),
            card.name,
            card.card_type,
            card.mana_cost,
            json_dumps(card.abilities_payload()),
            card.power,
            card.toughness,
            card.flavor_text,
            LOCATION_HAND,
            now,
            now,
        ),
    )
    row = cur.execute("SELECT * FROM cards WHERE card_id=?;", (card_id,)).fetchone()
    logger.info("card created: card_id=%s game_id=%s owner=%s type=%s", card_id, game_id, owner_id, card.card_type)
    return card_row_to_dict(row)


def set_card_image(cur: sqlite3.Cursor, card_id: str, *, data: bytes, mime_type: Optional[str] = None) -> str:
    """Store image bytes and point the card at them. Returns the image url."""
    now = utc_now_iso()
    cur.execute(
        """
        INSERT INTO card_images(card_id, mime_type, data, created_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(card_id) DO UPDATE SET
            mime_type=excluded.mime_type,
            data=excluded.data,
            created_at=excluded.created_at;
        """,
        (str(card_id), str(mime_type or DEFAULT_IMAGE_MIME), sqlite3.Binary(bytes(data)), now),
    )
    url = card_image_url(str(card_id))
    cur.execute("UPDATE cards SET image_url=?, updated_at=? WHERE card_id=?;", (url, now, str(card_id)))
    if cur.rowcount != 1:
        raise NotFoundError(CARD_NOT_FOUND, "Card not found", {"card_id": card_id})
    return url


# ------------------------
# Views
# ------------------------

def _require_game(repo: GameRepo, game_id: str) -> None:
    try:
        repo.get_game(game_id)
    except KeyError:
        raise NotFoundError(GAME_NOT_FOUND, "Game not found", {"game_id": game_id}) from None


def get_hand(db_path: str, game_id: str, player_id: str) -> List[Dict[str, Any]]:
    """Cards in `player_id`'s hand for this game."""
    with GameRepo(db_path) as repo:
        _require_game(repo, game_id)
        return repo.list_cards(game_id, location=LOCATION_HAND, owner_id=player_id)


def get_field(db_path: str, game_id: str) -> List[Dict[str, Any]]:
    """Cards on the battlefield for this game, both owners."""
    with GameRepo(db_path) as repo:
        _require_game(repo, game_id)
        return repo.list_cards(game_id, location=LOCATION_FIELD)


def get_card(db_path: str, card_id: str) -> Dict[str, Any]:
    with GameRepo(db_path) as repo:
        try:
            return repo.get_card(card_id)
        except KeyError:
            raise NotFoundError(CARD_NOT_FOUND, "Card not found", {"card_id": card_id}) from None


def get_card_image(db_path: str, card_id: str) -> Dict[str, Any]:
    with GameRepo(db_path) as repo:
        try:
            return repo.get_card_image(card_id)
        except KeyError:
            raise NotFoundError(CARD_IMAGE_NOT_FOUND, "Card image not available", {"card_id": card_id}) from None
