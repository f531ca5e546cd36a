from __future__ import annotations

"""Draft domain types.

This module is deliberately dependency-light so it can be imported by:
- draft.pool   (pure pool state machine)
- draft.ai     (bot pick policy)
- draft.engine (DB orchestration)

Conventions:
- player ids are opaque strings (players.player_id)
- word order in the available sequence is meaningful only after start_picking
  shuffles it; duplicates are allowed
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

PlayerId = str

# Protocol constants
MIN_POOL_SIZE = 4
PICKS_PER_PLAYER = 3
MAX_WORD_LENGTH = 50
MAX_WORDS_PER_SUBMIT = 5

# Derived pool states
STATE_EMPTY = "EMPTY"
STATE_COLLECTING = "COLLECTING"
STATE_PICKING = "PICKING"
STATE_COMPLETE = "COMPLETE"


@dataclass(frozen=True, slots=True)
class Seats:
    """The two participants of a game, in pick order."""

    player1: PlayerId
    player2: Optional[PlayerId] = None

    def has(self, player_id: Optional[str]) -> bool:
        if not player_id:
            return False
        return player_id in (self.player1, self.player2)

    def other(self, player_id: PlayerId) -> PlayerId:
        if player_id == self.player1:
            if not self.player2:
                raise ValueError("seat 2 is empty")
            return self.player2
        if player_id == self.player2:
            return self.player1
        raise ValueError(f"not a participant: {player_id}")

    def seat_of(self, player_id: Optional[str]) -> Optional[int]:
        if player_id and player_id == self.player1:
            return 1
        if player_id and player_id == self.player2:
            return 2
        return None


@dataclass(frozen=True, slots=True)
class PickResult:
    picked: str
    draft_complete: bool
    remaining_words: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "picked": str(self.picked),
            "draft_complete": bool(self.draft_complete),
            "remaining_words": int(self.remaining_words),
        }
