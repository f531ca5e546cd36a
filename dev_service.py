from __future__ import annotations

"""Dev-mode helpers: play against a bot without a second human.

Only reachable when VIBE_DEV_MODE is set. The bot goes through the same draft
engine as a human, so every draft guarantee still holds in bot games.
"""

import logging
from typing import Any, Dict, Optional

import config
from draft.ai import DraftAIPolicy
from draft.engine import bot_pick, load_game, load_pool, write_pool
from errors import DEV_MODE_DISABLED, WRONG_PHASE, NotFoundError, PreconditionError, TurnError
from game_repo import GameRepo, utc_now_iso
from game_service import apply_world, insert_game
from identity import Identity, find_player, resolve_player

logger = logging.getLogger(__name__)

BOT_IDENTITY = Identity(subject="bot-player-dev", name="Bot Player", email="bot@test.local")
BOT_WORDS = ("ancient ruins", "crystal caves", "shadow beasts")

MOCK_WORLD_NAME = "The Shattered Prism"
MOCK_WORLD_DESCRIPTION = (
    "A realm where ancient crystalline ruins pierce through shadowy mists. The land pulses with "
    "forgotten magic, where spectral beasts roam between dimensions. Towering spires of living crystal "
    "hum with arcane energy, while the shadows themselves seem to breathe and watch. This is a world "
    "caught between light and darkness, where power flows through both stone and spirit."
)
MOCK_RESOURCE_TYPES = ("Crystal Essence", "Shadow Mana", "Ancient Power", "Spectral Energy")
MOCK_PLAYER1_PICKS = ("crystal caves", "ancient ruins")
MOCK_PLAYER2_PICKS = ("shadow beasts",)


def require_dev_mode(enabled: Optional[bool] = None) -> None:
    if not (config.DEV_MODE if enabled is None else enabled):
        raise NotFoundError(DEV_MODE_DISABLED, "Dev mode is disabled")


def create_test_game(db_path: str, identity: Optional[Identity]) -> Dict[str, Any]:
    """Game already in draft: caller is player1, the bot is player2, bot words pre-seeded."""
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            player = resolve_player(cur, identity)
            bot = resolve_player(cur, BOT_IDENTITY)
            game_id = insert_game(
                cur,
                player1=player["player_id"],
                player2=bot["player_id"],
                phase="draft",
                status="active",
            )
            pool = load_pool(cur, game_id)
            pool.submit(list(BOT_WORDS))
            write_pool(cur, pool)

    logger.info("test game created: game_id=%s player1=%s bot=%s", game_id, player["player_id"], bot["player_id"])
    return {"game_id": game_id, "bot_words": list(BOT_WORDS), "bot_player_id": bot["player_id"]}


def get_bot_info(db_path: str) -> Optional[Dict[str, Any]]:
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            return find_player(cur, BOT_IDENTITY)


def bot_auto_pick(db_path: str, game_id: str, *, policy: Optional[DraftAIPolicy] = None) -> Dict[str, Any]:
    """Let the bot pick if it holds the turn; otherwise report why it did not."""
    bot = get_bot_info(db_path)
    if bot is None:
        return {"picked": None, "reason": "No bot player"}
    try:
        return bot_pick(db_path, game_id, bot["player_id"], policy=policy)
    except TurnError as exc:
        return {"picked": None, "reason": exc.message, "code": exc.code}


def skip_to_play_phase(db_path: str, game_id: str) -> Dict[str, Any]:
    """Finish the draft with mock picks and apply a mock world."""
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            game = load_game(cur, game_id)
            if game["phase"] not in ("draft", "generating"):
                raise PreconditionError(
                    WRONG_PHASE,
                    "Only a game in draft can skip to play",
                    {"phase": game["phase"]},
                )
            pool = load_pool(cur, game_id)
            pool.player1_picks = list(MOCK_PLAYER1_PICKS)
            pool.player2_picks = list(MOCK_PLAYER2_PICKS)
            pool.current_picker = None
            write_pool(cur, pool)

            cur.execute(
                "UPDATE games SET phase='generating', updated_at=? WHERE game_id=? AND phase='draft';",
                (utc_now_iso(), str(game_id)),
            )
            apply_world(
                cur,
                game_id,
                world_name=MOCK_WORLD_NAME,
                world_description=MOCK_WORLD_DESCRIPTION,
                resource_types=MOCK_RESOURCE_TYPES,
            )

    logger.info("skipped to play: game_id=%s", game_id)
    return {"success": True}
