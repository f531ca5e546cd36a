"""Generated cards: ability models, persistence and per-game views."""

from .abilities import Ability, GeneratedCard
from .types import CARD_TYPES, KEYWORDS, LOCATIONS, MECHANICS

__all__ = [
    "Ability",
    "CARD_TYPES",
    "GeneratedCard",
    "KEYWORDS",
    "LOCATIONS",
    "MECHANICS",
]
