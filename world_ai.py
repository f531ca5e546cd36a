from __future__ import annotations

"""World and card generation.

The generation client is always called outside any DB transaction:

  read inputs (short txn) -> client call -> validate -> guarded write (short txn)

World: game must be in 'generating'. The guarded write in
game_service.apply_world makes the world set-once even if two callers raced
to generate it.

Card: participant-only. The card row is committed first; the image job is
enqueued in its own transaction so image failures never affect the card.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from cards.abilities import GeneratedCard
from cards.service import insert_card
from draft.engine import load_game, load_pool, seats_of
from errors import (
    GENERATION_UNPARSABLE,
    NOT_IN_GAME,
    WORLD_MISSING,
    WRONG_PHASE,
    GenerationError,
    PreconditionError,
    ValidationError,
)
from game_repo import GameRepo
from game_service import apply_world
from gemini.client import GenerationClient
from gemini.prompts import (
    CARD_SCHEMA,
    MAX_RESOURCE_TYPES,
    MIN_RESOURCE_TYPES,
    WORLD_SCHEMA,
    build_card_prompt,
    build_world_prompt,
)
from image_jobs import enqueue_image_job

logger = logging.getLogger(__name__)


class GeneratedWorld(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    world_name: str = Field(default="", alias="worldName")
    world_description: str = Field(min_length=1, alias="worldDescription")
    resource_types: List[str] = Field(alias="resourceTypes")

    @field_validator("resource_types", mode="before")
    @classmethod
    def _clean_resources(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        out: List[str] = []
        for x in v:
            s = str(x or "").strip()
            if s and s not in out:
                out.append(s)
        if len(out) < MIN_RESOURCE_TYPES:
            raise ValueError(f"expected at least {MIN_RESOURCE_TYPES} resource types, got {len(out)}")
        return out[:MAX_RESOURCE_TYPES]

    @field_validator("world_name", "world_description", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


def _unparsable(what: str, exc: Exception) -> GenerationError:
    logger.warning("%s output failed validation: %s", what, exc)
    return GenerationError(
        GENERATION_UNPARSABLE,
        f"Generation service returned an invalid {what}",
        {"errors": str(exc)[:1000]},
    )


def generate_world(
    db_path: str,
    game_id: str,
    *,
    client: GenerationClient,
    player1_themes: Optional[Sequence[str]] = None,
    player2_themes: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """Build the shared world from both draft pick lists and move the game to play.

    On GenerationError the game stays in 'generating' and the call may be retried.
    """
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            game = load_game(cur, game_id)
            if game["phase"] != "generating":
                raise PreconditionError(
                    WRONG_PHASE,
                    "World can only be generated after the draft completes",
                    {"phase": game["phase"]},
                )
            pool = load_pool(cur, game_id)

    p1 = list(player1_themes) if player1_themes is not None else list(pool.player1_picks)
    p2 = list(player2_themes) if player2_themes is not None else list(pool.player2_picks)

    logger.info("world generation started: game_id=%s p1=%s p2=%s", game_id, p1, p2)
    raw = client.generate_json(build_world_prompt(p1, p2), schema=WORLD_SCHEMA)
    try:
        world = GeneratedWorld.model_validate(raw)
    except PydanticValidationError as exc:
        raise _unparsable("world", exc) from exc

    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            apply_world(
                cur,
                game_id,
                world_name=world.world_name or "Unnamed World",
                world_description=world.world_description,
                resource_types=world.resource_types,
            )

    return {
        "world_name": world.world_name or "Unnamed World",
        "world_description": world.world_description,
        "resource_types": list(world.resource_types),
    }


def generate_card(
    db_path: str,
    game_id: str,
    player_id: str,
    *,
    client: GenerationClient,
    world_description: Optional[str] = None,
    themes: Optional[Sequence[str]] = None,
    resource_types: Optional[Sequence[str]] = None,
    field_context: Optional[str] = None,
) -> Dict[str, Any]:
    """Generate one card into `player_id`'s hand. Returns {card_id, card, image_job_id}."""
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            game = load_game(cur, game_id)
            seats = seats_of(game)
            if not seats.has(player_id):
                raise ValidationError(NOT_IN_GAME, "You are not in this game", {"game_id": game_id})
            pool = load_pool(cur, game_id)

    world = world_description if world_description is not None else game["world_description"]
    resources = list(resource_types) if resource_types is not None else list(game["resource_types"] or [])
    if not world or not resources:
        raise PreconditionError(
            WORLD_MISSING,
            "The world has not been generated yet",
            {"game_id": game_id, "phase": game["phase"]},
        )
    picks = list(themes) if themes is not None else pool.picks_for(seats, player_id)

    raw = client.generate_json(
        build_card_prompt(
            world_description=world,
            themes=picks,
            resource_types=resources,
            field_context=field_context,
        ),
        schema=CARD_SCHEMA,
    )
    try:
        generated = GeneratedCard.model_validate(raw)
    except PydanticValidationError as exc:
        raise _unparsable("card", exc) from exc

    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            card = insert_card(cur, game_id=game_id, owner_id=player_id, card=generated)

    job_id = None
    if generated.image_prompt:
        job_id = enqueue_image_job(
            db_path,
            card["card_id"],
            image_prompt=generated.image_prompt,
            world_description=world,
        )

    return {"card_id": card["card_id"], "card": card, "image_job_id": job_id}
