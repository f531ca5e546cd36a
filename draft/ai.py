from __future__ import annotations

"""Draft bot interfaces.

A bot participant follows exactly the same pick contract as a human; the only
difference is that the policy chooses the word instead of the caller.

If you add new policies in the future, keep them in separate modules and
register them explicitly in draft/engine.py (no silent fallback policies).
"""

import random
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .types import PlayerId


@dataclass(frozen=True, slots=True)
class DraftAIContext:
    game_id: str
    player_id: PlayerId
    own_picks: Sequence[str] = ()
    opponent_picks: Sequence[str] = ()


class DraftAIPolicy(Protocol):
    def choose(self, words: Sequence[str], ctx: DraftAIContext) -> str:
        ...


class RandomPickPolicy:
    """Uniformly random over the available sequence (duplicates weigh more)."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def choose(self, words: Sequence[str], ctx: DraftAIContext) -> str:
        if not words:
            raise ValueError(f"no words available: game_id={ctx.game_id}")
        return words[self._rng.randrange(len(words))]
