from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

import state
from app.api.deps import get_generation_client, get_identity
from app.schemas.games import PickWordRequest, SubmitWordsRequest
from app.services.error_facade import _game_error_response
from app.services.generation_facade import _run_triggered_world_generation
from draft.engine import get_draft_pool, pick_word, start_picking, submit_words
from errors import GameError
from gemini.client import GenerationClient
from identity import Identity

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/games/{game_id}/draft")
async def api_get_draft_pool(game_id: str):
    """getDraftPool."""
    try:
        return {"ok": True, "draft": get_draft_pool(state.get_db_path(), game_id)}
    except GameError as exc:
        return _game_error_response(exc)


@router.post("/api/games/{game_id}/draft/words")
async def api_submit_words(
    game_id: str,
    req: SubmitWordsRequest,
    identity: Optional[Identity] = Depends(get_identity),
):
    """submitWords: append up to 5 sanitized words to the shared pool."""
    try:
        out = submit_words(state.get_db_path(), game_id, identity, req.words)
        return {"ok": True, **out}
    except GameError as exc:
        return _game_error_response(exc)


@router.post("/api/games/{game_id}/draft/start")
async def api_start_picking(game_id: str):
    """startPicking: shuffle the pool; player 1 picks first."""
    try:
        out = start_picking(state.get_db_path(), game_id)
        return {"ok": True, **out}
    except GameError as exc:
        return _game_error_response(exc)


@router.post("/api/games/{game_id}/draft/pick")
async def api_pick_word(
    game_id: str,
    req: PickWordRequest,
    identity: Optional[Identity] = Depends(get_identity),
    client: GenerationClient = Depends(get_generation_client),
):
    """pickWord. The pick that completes the draft also generates the world."""
    db_path = state.get_db_path()
    try:
        out = pick_word(db_path, game_id, identity, req.word)
    except GameError as exc:
        return _game_error_response(exc)

    if out.get("trigger_generation"):
        out.update(await _run_triggered_world_generation(db_path, game_id, client))
    return {"ok": True, **out}
