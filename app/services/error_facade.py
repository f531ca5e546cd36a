from __future__ import annotations

from fastapi.responses import JSONResponse

from errors import GameError


def _game_error_response(error: GameError) -> JSONResponse:
    payload = {
        "ok": False,
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details,
        },
    }
    return JSONResponse(status_code=int(error.status_code), content=payload)
