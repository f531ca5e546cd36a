from __future__ import annotations

import logging
from typing import Any, Dict

from starlette.concurrency import run_in_threadpool

from errors import GENERATION_FAILED, GameError
from gemini.client import GenerationClient
from world_ai import generate_world

logger = logging.getLogger(__name__)


async def _run_triggered_world_generation(db_path: str, game_id: str, client: GenerationClient) -> Dict[str, Any]:
    """World generation for the pick that completed the draft.

    Failures are reported, not raised: the pick itself is committed and
    the game stays in 'generating' for a manual retry via the world route.
    """
    try:
        world = await run_in_threadpool(generate_world, db_path, game_id, client=client)
        return {"world": world, "generation_error": None}
    except GameError as exc:
        logger.warning("world generation after draft failed: game_id=%s code=%s", game_id, exc.code)
        return {"world": None, "generation_error": exc.to_payload()}
    except Exception as exc:
        logger.exception("world generation after draft crashed: game_id=%s", game_id)
        return {
            "world": None,
            "generation_error": {
                "code": GENERATION_FAILED,
                "message": "World generation failed; retry via the world route",
                "details": {"error": type(exc).__name__},
            },
        }
