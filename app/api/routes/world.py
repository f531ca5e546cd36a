from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

import state
from app.api.deps import get_generation_client
from app.schemas.games import GenerateWorldRequest
from app.services.error_facade import _game_error_response
from errors import GameError
from gemini.client import GenerationClient
from world_ai import generate_world

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/games/{game_id}/world")
async def api_generate_world(
    game_id: str,
    req: Optional[GenerateWorldRequest] = None,
    client: GenerationClient = Depends(get_generation_client),
):
    """generateWorld: manual (re)try for a game stuck in 'generating'."""
    req = req or GenerateWorldRequest()
    try:
        world = await run_in_threadpool(
            generate_world,
            state.get_db_path(),
            game_id,
            client=client,
            player1_themes=req.player1_themes,
            player2_themes=req.player2_themes,
        )
        return {"ok": True, "world": world}
    except GameError as exc:
        return _game_error_response(exc)
    except Exception as e:
        logger.exception("world generation crashed: game_id=%s", game_id)
        raise HTTPException(status_code=500, detail=f"World generation failed: {e}")
