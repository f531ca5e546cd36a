from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

import state
from app.api.deps import get_generation_client, get_identity
from app.schemas.games import GenerateCardRequest
from app.services.error_facade import _game_error_response
from cards.service import get_card, get_card_image, get_field, get_hand
from errors import GameError
from game_service import player_for
from gemini.client import GenerationClient
from identity import Identity
from image_jobs import run_image_job
from world_ai import generate_card

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/games/{game_id}/cards")
async def api_generate_card(
    game_id: str,
    background_tasks: BackgroundTasks,
    req: Optional[GenerateCardRequest] = None,
    identity: Optional[Identity] = Depends(get_identity),
    client: GenerationClient = Depends(get_generation_client),
):
    """generateCard: new card in the caller's hand; art is rendered after the response."""
    req = req or GenerateCardRequest()
    db_path = state.get_db_path()
    try:
        player = player_for(db_path, identity)
        out = await run_in_threadpool(
            generate_card,
            db_path,
            game_id,
            player["player_id"],
            client=client,
            world_description=req.world_description,
            themes=req.themes,
            resource_types=req.resource_types,
            field_context=req.field_context,
        )
    except GameError as exc:
        return _game_error_response(exc)
    except Exception as e:
        logger.exception("card generation crashed: game_id=%s", game_id)
        raise HTTPException(status_code=500, detail=f"Card generation failed: {e}")

    if out.get("image_job_id"):
        background_tasks.add_task(run_image_job, db_path, out["image_job_id"], client=client)
    return {"ok": True, **out}


@router.get("/api/games/{game_id}/hand")
async def api_get_hand(game_id: str, identity: Optional[Identity] = Depends(get_identity)):
    """getHand: the caller's cards in hand."""
    db_path = state.get_db_path()
    try:
        player = player_for(db_path, identity)
        return {"ok": True, "cards": get_hand(db_path, game_id, player["player_id"])}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/games/{game_id}/field")
async def api_get_field(game_id: str):
    """getField: cards on the battlefield, both players."""
    try:
        return {"ok": True, "cards": get_field(state.get_db_path(), game_id)}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/cards/{card_id}")
async def api_get_card(card_id: str):
    try:
        return {"ok": True, "card": get_card(state.get_db_path(), card_id)}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/cards/{card_id}/image")
async def api_get_card_image(card_id: str):
    try:
        img = get_card_image(state.get_db_path(), card_id)
    except GameError as exc:
        return _game_error_response(exc)
    return Response(content=img["data"], media_type=img["mime_type"])
