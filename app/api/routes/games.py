from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

import state
from app.api.deps import get_identity
from app.services.error_facade import _game_error_response
from errors import GameError
from game_service import create_game, get_game, get_my_role, join_game, list_open_games, my_games
from identity import Identity

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/games")
async def api_create_game(identity: Optional[Identity] = Depends(get_identity)):
    """createSession: the caller becomes player 1 of a new waiting game."""
    try:
        game_id = create_game(state.get_db_path(), identity)
        return {"ok": True, "game_id": game_id}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/games/open")
async def api_list_open_games():
    games = list_open_games(state.get_db_path())
    return {"ok": True, "games": games}


@router.get("/api/games/mine")
async def api_my_games(identity: Optional[Identity] = Depends(get_identity)):
    try:
        return {"ok": True, "games": my_games(state.get_db_path(), identity)}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/games/{game_id}")
async def api_get_game(game_id: str):
    """getSession."""
    try:
        return {"ok": True, "game": get_game(state.get_db_path(), game_id)}
    except GameError as exc:
        return _game_error_response(exc)


@router.post("/api/games/{game_id}/join")
async def api_join_game(game_id: str, identity: Optional[Identity] = Depends(get_identity)):
    """joinSession: the caller takes seat 2 and the game enters the draft."""
    try:
        joined = join_game(state.get_db_path(), game_id, identity)
        return {"ok": True, "game_id": joined}
    except GameError as exc:
        return _game_error_response(exc)


@router.get("/api/games/{game_id}/role")
async def api_get_my_role(game_id: str, identity: Optional[Identity] = Depends(get_identity)):
    try:
        role = get_my_role(state.get_db_path(), game_id, identity)
        return {"ok": True, "role": (role or {}).get("role"), "player_id": (role or {}).get("player_id")}
    except GameError as exc:
        return _game_error_response(exc)
