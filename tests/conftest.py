from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Tuple

import pytest

import state
from draft.engine import start_picking, submit_words
from game_repo import GameRepo
from game_service import create_game, join_game
from identity import Identity

ALICE = Identity(subject="auth|alice", name="Alice", email="alice@example.com")
BOB = Identity(subject="auth|bob", name="Bob", email="bob@example.com")
CAROL = Identity(subject="auth|carol", name="Carol")

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"

WORLD_OK = {
    "worldName": "Emberdeep",
    "worldDescription": "A drowned volcano where coral grows over cooling magma.",
    "resourceTypes": ["Magma Essence", "Abyssal Coral", "Sacred Steam", "Ash Silver"],
}

CREATURE_OK = {
    "name": "Coral Wyrm",
    "cardType": "creature",
    "manaCost": "2 Magma Essence, 1 Abyssal Coral",
    "power": 3,
    "toughness": 4,
    "abilities": [
        {
            "mechanicId": "DEAL_DAMAGE",
            "params": {"target": "creature", "amount": 2},
            "flavoredText": "Deal 2 damage to target creature",
        },
        {
            "mechanicId": "GRANT_KEYWORD",
            "params": {"target": "self", "keyword": "FLYING"},
            "flavoredText": "Coral Wyrm gains flying",
        },
    ],
    "flavorText": "It sleeps where the sea boils.",
    "imagePrompt": "A serpent of coral rising from glowing magma",
}


class FakeGenerationClient:
    """Scripted stand-in for GeminiClient.

    json_responses / image_responses are consumed in order; an Exception
    instance is raised instead of returned.
    """

    def __init__(
        self,
        json_responses: Optional[List[Any]] = None,
        image_responses: Optional[List[Any]] = None,
    ):
        self.json_responses = list(json_responses or [])
        self.image_responses = list(image_responses or [])
        self.json_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.image_calls: List[str] = []

    def generate_json(self, prompt: str, *, schema: Dict[str, Any]) -> Dict[str, Any]:
        self.json_calls.append((prompt, schema))
        if not self.json_responses:
            raise AssertionError("unexpected generate_json call")
        out = self.json_responses.pop(0)
        if isinstance(out, Exception):
            raise out
        return out

    def generate_image(self, prompt: str) -> Tuple[bytes, str]:
        self.image_calls.append(prompt)
        if not self.image_responses:
            return PNG_BYTES, "image/png"
        out = self.image_responses.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "game.sqlite3")
    with GameRepo(path) as repo:
        repo.init_db()
    state.set_db_path(path)
    return path


@pytest.fixture()
def fake_client():
    return FakeGenerationClient()


@pytest.fixture()
def draft_game(db_path):
    """Game in draft: ALICE is player1, BOB is player2."""
    game_id = create_game(db_path, ALICE)
    join_game(db_path, game_id, BOB)
    return game_id


@pytest.fixture()
def picking_game(db_path, draft_game):
    """Draft game with [a, b, c, d] in the pool, picking started without reordering."""
    submit_words(db_path, draft_game, ALICE, ["a", "b"])
    submit_words(db_path, draft_game, BOB, ["c", "d"])
    start_picking(db_path, draft_game, rng=_NoShuffle())
    return draft_game


class _NoShuffle(random.Random):
    def shuffle(self, x, *args, **kwargs):  # type: ignore[override]
        return None


def player_id_of(db_path: str, identity: Identity) -> str:
    with GameRepo(db_path) as repo:
        return repo.find_player_by_subject(identity.subject)["player_id"]


def auth_headers(identity: Identity) -> Dict[str, str]:
    headers = {"X-Auth-Subject": identity.subject}
    if identity.name:
        headers["X-Auth-Name"] = identity.name
    if identity.email:
        headers["X-Auth-Email"] = identity.email
    return headers
