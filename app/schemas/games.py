from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class SubmitWordsRequest(BaseModel):
    words: List[str] = Field(default_factory=list)  # sanitized server-side; at most 5 kept


class PickWordRequest(BaseModel):
    word: str


class GenerateWorldRequest(BaseModel):
    # Defaults to each seat's draft picks.
    player1_themes: Optional[List[str]] = None
    player2_themes: Optional[List[str]] = None


class GenerateCardRequest(BaseModel):
    # Defaults: game world, caller's picks, game resource types.
    world_description: Optional[str] = None
    themes: Optional[List[str]] = None
    resource_types: Optional[List[str]] = None
    field_context: Optional[str] = None
