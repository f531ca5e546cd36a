from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
import state
from app.api.router import api_router
from game_repo import GameRepo

logger = logging.getLogger(__name__)

app = FastAPI(title="Vibe Cards game server")


@app.on_event("startup")
def _startup_init_state() -> None:
    # 1) logging level from env
    # 2) DB path is required (no default db_path)
    # 3) schema init + integrity validate once (per db_path)
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))

    db_path = os.environ.get(config.DB_PATH_ENV)
    if not db_path:
        raise RuntimeError(f"{config.DB_PATH_ENV} is required (no default db_path).")
    state.set_db_path(db_path)

    with GameRepo(db_path) as repo:
        repo.init_db()
        try:
            repo.validate_integrity()
        except ValueError as e:
            raise RuntimeError(f"validate_integrity() failed during startup: {e}") from e

    logger.info("server ready: db_path=%s dev_mode=%s", db_path, config.DEV_MODE)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
