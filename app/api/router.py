from fastapi import APIRouter

from app.api.routes import cards, dev, draft, games, world

api_router = APIRouter()
api_router.include_router(games.router)
api_router.include_router(draft.router)
api_router.include_router(world.router)
api_router.include_router(cards.router)
api_router.include_router(dev.router)
