from __future__ import annotations

"""Structured game errors.

The API layer maps these to HTTP 4xx/5xx while keeping a stable
machine-readable code for client/UI.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class GameError(Exception):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = field(default=None)

    # HTTP status used by the API layer
    status_code = 400

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details or {}),
        }


class ValidationError(GameError):
    """Malformed caller input. Caller corrects and retries."""

    status_code = 400


class NotAuthenticatedError(GameError):
    status_code = 401


class NotFoundError(GameError):
    status_code = 404


class PreconditionError(GameError):
    """Operation attempted in the wrong state. Caller waits or adjusts."""

    status_code = 409


class TurnError(GameError):
    """Out-of-turn action. Caller waits."""

    status_code = 409


class ConflictError(GameError):
    """Session already full or transition already performed."""

    status_code = 409


class SelfJoinError(ConflictError):
    status_code = 409


class GenerationError(GameError):
    """Generation service failure or unparsable structured output.

    Never retried automatically; the game keeps its pre-call phase.
    """

    status_code = 502


# Error codes (stable API surface)
NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
GAME_NOT_FOUND = "GAME_NOT_FOUND"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
CARD_NOT_FOUND = "CARD_NOT_FOUND"
CARD_IMAGE_NOT_FOUND = "CARD_IMAGE_NOT_FOUND"
DRAFT_POOL_NOT_FOUND = "DRAFT_POOL_NOT_FOUND"
NOT_IN_GAME = "NOT_IN_GAME"
WRONG_PHASE = "WRONG_PHASE"
GAME_FULL = "GAME_FULL"
SELF_JOIN = "SELF_JOIN"
WORDS_EMPTY = "WORDS_EMPTY"
POOL_TOO_SMALL = "POOL_TOO_SMALL"
PICKING_ALREADY_STARTED = "PICKING_ALREADY_STARTED"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
PICKING_NOT_STARTED = "PICKING_NOT_STARTED"
DRAFT_COMPLETE = "DRAFT_COMPLETE"
WORD_NOT_IN_POOL = "WORD_NOT_IN_POOL"
STALE_WRITE = "STALE_WRITE"
WORLD_ALREADY_SET = "WORLD_ALREADY_SET"
WORLD_MISSING = "WORLD_MISSING"
GENERATION_UNAVAILABLE = "GENERATION_UNAVAILABLE"
GENERATION_FAILED = "GENERATION_FAILED"
GENERATION_UNPARSABLE = "GENERATION_UNPARSABLE"
DEV_MODE_DISABLED = "DEV_MODE_DISABLED"
