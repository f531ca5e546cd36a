from __future__ import annotations

"""Card domain constants.

Kept free of pydantic so db_schema / repo code can import the vocabularies
without pulling in the ability models.
"""

CARD_TYPES = ("creature", "instant", "sorcery", "enchantment", "artifact", "land")
LOCATIONS = ("hand", "field", "graveyard", "exile")

# Locations exposed by the per-game views
LOCATION_HAND = "hand"
LOCATION_FIELD = "field"

MECHANICS = (
    "DEAL_DAMAGE",
    "DEAL_DAMAGE_AOE",
    "HEAL",
    "GAIN_LIFE",
    "DRAW_CARDS",
    "DISCARD_CARDS",
    "DESTROY",
    "EXILE",
    "RETURN_TO_HAND",
    "BUFF_STATS",
    "GRANT_KEYWORD",
    "TAP",
    "UNTAP",
    "COPY",
    "COUNTER",
    "ADD_MANA",
)

KEYWORDS = (
    "FLYING",
    "TRAMPLE",
    "HASTE",
    "VIGILANCE",
    "DEATHTOUCH",
    "LIFELINK",
    "FIRST_STRIKE",
    "HEXPROOF",
)

DEFAULT_IMAGE_MIME = "image/png"


def card_image_url(card_id: str) -> str:
    """Public URL served by the cards route for a stored image."""
    return f"/api/cards/{card_id}/image"
