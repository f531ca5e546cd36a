from __future__ import annotations

"""Draft word pool state machine (in-memory).

- Holds:
    * available words (ordered; duplicates allowed)
    * per-seat claimed words
    * current picker (None before picking starts and after completion)
    * version (compare-and-set token for the persisted row)

- Provides:
    * submit()        COLLECTING append (sanitized, anonymous)
    * start_picking() shuffle + seat 1 picks first
    * pick()          remove one occurrence, claim, flip or complete

Every transition validates fully before it mutates, so a rejected call leaves
the pool untouched. Persistence and locking live in draft.engine.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from errors import (
    DRAFT_COMPLETE,
    NOT_YOUR_TURN,
    PICKING_ALREADY_STARTED,
    PICKING_NOT_STARTED,
    POOL_TOO_SMALL,
    WORD_NOT_IN_POOL,
    WORDS_EMPTY,
    ConflictError,
    NotFoundError,
    PreconditionError,
    TurnError,
    ValidationError,
)

from .types import (
    MAX_WORD_LENGTH,
    MAX_WORDS_PER_SUBMIT,
    MIN_POOL_SIZE,
    PICKS_PER_PLAYER,
    STATE_COLLECTING,
    STATE_COMPLETE,
    STATE_EMPTY,
    STATE_PICKING,
    PickResult,
    PlayerId,
    Seats,
)


def sanitize_words(words: Iterable[Any]) -> List[str]:
    """Trim, drop empty / over-length entries, keep at most MAX_WORDS_PER_SUBMIT."""
    cleaned: List[str] = []
    for w in words or []:
        if not isinstance(w, str):
            continue
        s = w.strip()
        if not s or len(s) > MAX_WORD_LENGTH:
            continue
        cleaned.append(s)
    return cleaned[:MAX_WORDS_PER_SUBMIT]


@dataclass(slots=True)
class DraftPool:
    game_id: str
    words: List[str] = field(default_factory=list)
    player1_picks: List[str] = field(default_factory=list)
    player2_picks: List[str] = field(default_factory=list)
    current_picker: Optional[PlayerId] = None
    version: int = 0

    @property
    def state(self) -> str:
        if self.current_picker:
            return STATE_PICKING
        if self.player1_picks or self.player2_picks:
            return STATE_COMPLETE
        if self.words:
            return STATE_COLLECTING
        return STATE_EMPTY

    def is_complete(self) -> bool:
        return self.state == STATE_COMPLETE

    def picks_for_seat(self, seat: int) -> List[str]:
        return self.player1_picks if seat == 1 else self.player2_picks

    def picks_for(self, seats: Seats, player_id: str) -> List[str]:
        seat = seats.seat_of(player_id)
        if seat is None:
            return []
        return list(self.picks_for_seat(seat))

    # ------------------------
    # Transitions
    # ------------------------

    def submit(self, words: Iterable[Any]) -> List[str]:
        """Append sanitized words. Returns the accepted words."""
        cleaned = sanitize_words(words)
        if not cleaned:
            raise ValidationError(
                WORDS_EMPTY,
                "Please submit at least one word",
                {"max_length": MAX_WORD_LENGTH, "max_per_submit": MAX_WORDS_PER_SUBMIT},
            )
        self.words.extend(cleaned)
        return cleaned

    def start_picking(self, seats: Seats, *, rng: Optional[random.Random] = None) -> None:
        """Shuffle the available words and hand the first pick to seat 1."""
        state = self.state
        if state == STATE_PICKING:
            raise ConflictError(PICKING_ALREADY_STARTED, "Picking has already started")
        if state == STATE_COMPLETE:
            raise ConflictError(DRAFT_COMPLETE, "The draft is already complete")
        if len(self.words) < MIN_POOL_SIZE:
            raise PreconditionError(
                POOL_TOO_SMALL,
                f"Draft is not ready: need at least {MIN_POOL_SIZE} words in the pool to start picking",
                {"pool_size": len(self.words), "min_pool_size": MIN_POOL_SIZE},
            )
        shuffled = list(self.words)
        (rng or random).shuffle(shuffled)
        self.words = shuffled
        self.current_picker = seats.player1

    def require_turn(self, player_id: PlayerId) -> None:
        if not self.current_picker:
            if self.is_complete():
                raise TurnError(DRAFT_COMPLETE, "The draft is already complete")
            raise TurnError(PICKING_NOT_STARTED, "Picking has not started yet")
        if self.current_picker != player_id:
            raise TurnError(NOT_YOUR_TURN, "It's not your turn to pick")

    def pick(self, player_id: PlayerId, word: str, seats: Seats) -> PickResult:
        """Claim one occurrence of `word` for the current picker."""
        self.require_turn(player_id)
        try:
            idx = self.words.index(word)
        except ValueError:
            raise NotFoundError(WORD_NOT_IN_POOL, "Word not in pool", {"word": word}) from None

        seat = seats.seat_of(player_id)
        if seat is None:  # current_picker is always a participant
            raise TurnError(NOT_YOUR_TURN, "It's not your turn to pick")

        picked = self.words.pop(idx)
        self.picks_for_seat(seat).append(picked)

        complete = (not self.words) or (
            len(self.player1_picks) >= PICKS_PER_PLAYER and len(self.player2_picks) >= PICKS_PER_PLAYER
        )
        self.current_picker = None if complete else seats.other(player_id)
        return PickResult(picked=picked, draft_complete=complete, remaining_words=len(self.words))

    # ------------------------
    # Serialization
    # ------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": str(self.game_id),
            "words": list(self.words),
            "player1_picks": list(self.player1_picks),
            "player2_picks": list(self.player2_picks),
            "current_picker": self.current_picker,
            "version": int(self.version),
            "state": self.state,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DraftPool":
        return cls(
            game_id=str(d.get("game_id") or ""),
            words=[str(x) for x in (d.get("words") or [])],
            player1_picks=[str(x) for x in (d.get("player1_picks") or [])],
            player2_picks=[str(x) for x in (d.get("player2_picks") or [])],
            current_picker=(str(d["current_picker"]) if d.get("current_picker") else None),
            version=int(d.get("version") or 0),
        )
