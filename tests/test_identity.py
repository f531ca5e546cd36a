from __future__ import annotations

import pytest

from errors import NotAuthenticatedError, NotFoundError
from game_repo import GameRepo
from identity import Identity, require_player, resolve_player


def test_resolve_creates_then_reuses(db_path):
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            first = resolve_player(cur, Identity(subject=" auth|zed ", name="Zed", email="z@example.com"))
            again = resolve_player(cur, Identity(subject="auth|zed", name="Other"))
    assert first["player_id"] == again["player_id"]
    assert again["name"] == "Zed"
    assert again["auth_subject"] == "auth|zed"


def test_require_player_does_not_create(db_path):
    with GameRepo(db_path) as repo:
        with repo.transaction() as cur:
            with pytest.raises(NotFoundError):
                require_player(cur, Identity(subject="auth|ghost"))
            with pytest.raises(NotAuthenticatedError):
                require_player(cur, None)
        assert repo.find_player_by_subject("auth|ghost") is None
