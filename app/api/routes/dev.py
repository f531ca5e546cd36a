from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

import state
from app.api.deps import get_generation_client, get_identity
from app.services.error_facade import _game_error_response
from app.services.generation_facade import _run_triggered_world_generation
from dev_service import bot_auto_pick, create_test_game, get_bot_info, require_dev_mode, skip_to_play_phase
from errors import GameError
from gemini.client import GenerationClient
from identity import Identity

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/dev/test-game")
async def api_dev_create_test_game(identity: Optional[Identity] = Depends(get_identity)):
    try:
        require_dev_mode()
        return {"ok": True, **create_test_game(state.get_db_path(), identity)}
    except GameError as exc:
        return _game_error_response(exc)


@router.post("/api/dev/games/{game_id}/bot-pick")
async def api_dev_bot_pick(game_id: str, client: GenerationClient = Depends(get_generation_client)):
    db_path = state.get_db_path()
    try:
        require_dev_mode()
        out = bot_auto_pick(db_path, game_id)
    except GameError as exc:
        return _game_error_response(exc)

    if out.get("trigger_generation"):
        out.update(await _run_triggered_world_generation(db_path, game_id, client))
    return {"ok": True, **out}


@router.post("/api/dev/games/{game_id}/skip-to-play")
async def api_dev_skip_to_play(game_id: str):
    try:
        require_dev_mode()
        return {"ok": True, **skip_to_play_phase(state.get_db_path(), game_id)}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/dev/bot")
async def api_dev_bot():
    try:
        require_dev_mode()
        return {"ok": True, "bot": get_bot_info(state.get_db_path())}
    except GameError as exc:
        return _game_error_response(exc)
