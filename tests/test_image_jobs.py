from __future__ import annotations

import pytest

from conftest import ALICE, BOB, CREATURE_OK, PNG_BYTES, WORLD_OK, FakeGenerationClient, player_id_of
from draft.engine import pick_word
from errors import GenerationError
from game_repo import GameRepo
from image_jobs import run_image_job, run_pending_image_jobs
from world_ai import generate_card, generate_world


@pytest.fixture()
def card_with_job(db_path, picking_game):
    for who, word in [(ALICE, "a"), (BOB, "b"), (ALICE, "c"), (BOB, "d")]:
        pick_word(db_path, picking_game, who, word)
    generate_world(db_path, picking_game, client=FakeGenerationClient([dict(WORLD_OK)]))
    out = generate_card(
        db_path,
        picking_game,
        player_id_of(db_path, ALICE),
        client=FakeGenerationClient([dict(CREATURE_OK)]),
    )
    return out


def _no_sleep(_s):
    return None


def _job(db_path, job_id):
    with GameRepo(db_path) as repo:
        return repo.get_image_job(job_id)


def _card(db_path, card_id):
    with GameRepo(db_path) as repo:
        return repo.get_card(card_id)


def test_job_stores_image_and_sets_url(db_path, card_with_job):
    client = FakeGenerationClient()
    status = run_image_job(db_path, card_with_job["image_job_id"], client=client, sleep=_no_sleep)

    assert status == "done"
    assert CREATURE_OK["imagePrompt"] in client.image_calls[0]
    assert WORLD_OK["worldDescription"][:50] in client.image_calls[0]

    card = _card(db_path, card_with_job["card_id"])
    assert card["image_url"] == f"/api/cards/{card['card_id']}/image"
    with GameRepo(db_path) as repo:
        img = repo.get_card_image(card["card_id"])
    assert img["data"] == PNG_BYTES
    assert img["mime_type"] == "image/png"
    job = _job(db_path, card_with_job["image_job_id"])
    assert (job["status"], job["attempts"], job["last_error"]) == ("done", 1, None)


def test_job_retries_then_succeeds(db_path, card_with_job):
    flaky = GenerationError("GENERATION_FAILED", "HTTP 503", {"retriable": True})
    client = FakeGenerationClient(image_responses=[flaky, (PNG_BYTES, "image/webp")])
    delays = []
    status = run_image_job(
        db_path,
        card_with_job["image_job_id"],
        client=client,
        max_attempts=3,
        base_delay_s=0.0,
        sleep=delays.append,
    )
    assert status == "done"
    assert len(delays) == 1
    assert _job(db_path, card_with_job["image_job_id"])["attempts"] == 2


def test_job_honors_retry_after(db_path, card_with_job):
    limited = GenerationError("GENERATION_FAILED", "HTTP 429", {"retry_after_s": 7})
    client = FakeGenerationClient(image_responses=[limited, (PNG_BYTES, "image/png")])
    delays = []
    run_image_job(db_path, card_with_job["image_job_id"], client=client, sleep=delays.append)
    assert delays == [7.0]


def test_job_gives_up_without_touching_card(db_path, card_with_job):
    before = _card(db_path, card_with_job["card_id"])
    client = FakeGenerationClient(image_responses=[RuntimeError("boom")] * 3)
    status = run_image_job(
        db_path,
        card_with_job["image_job_id"],
        client=client,
        max_attempts=3,
        base_delay_s=0.0,
        sleep=_no_sleep,
    )
    assert status == "failed"
    job = _job(db_path, card_with_job["image_job_id"])
    assert job["status"] == "failed"
    assert job["attempts"] == 3
    assert "boom" in job["last_error"]
    assert _card(db_path, card_with_job["card_id"]) == before


def test_finished_job_is_not_rerun(db_path, card_with_job):
    client = FakeGenerationClient()
    run_image_job(db_path, card_with_job["image_job_id"], client=client, sleep=_no_sleep)
    assert run_image_job(db_path, card_with_job["image_job_id"], client=client, sleep=_no_sleep) == "done"
    assert len(client.image_calls) == 1


def test_unknown_job_reports_failed(db_path):
    assert run_image_job(db_path, "img_missing", client=FakeGenerationClient(), sleep=_no_sleep) == "failed"


def test_drain_pending_jobs(db_path, card_with_job):
    results = run_pending_image_jobs(db_path, client=FakeGenerationClient(), sleep=_no_sleep)
    assert results == {card_with_job["image_job_id"]: "done"}
    assert run_pending_image_jobs(db_path, client=FakeGenerationClient()) == {}


def _orphan(db_path, job_id, *, updated_at):
    # Mimics a worker that died after claiming the job.
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            cur.execute(
                "UPDATE image_jobs SET status='running', attempts=1, updated_at=? WHERE job_id=?;",
                (updated_at, job_id),
            )


def test_drain_reclaims_orphaned_running_job(db_path, card_with_job):
    job_id = card_with_job["image_job_id"]
    _orphan(db_path, job_id, updated_at="2000-01-01T00:00:00Z")

    client = FakeGenerationClient()
    results = run_pending_image_jobs(db_path, client=client, sleep=_no_sleep)

    assert results == {job_id: "done"}
    assert len(client.image_calls) == 1
    job = _job(db_path, job_id)
    assert (job["status"], job["attempts"]) == ("done", 2)
    card = _card(db_path, card_with_job["card_id"])
    assert card["image_url"] == f"/api/cards/{card['card_id']}/image"


def test_fresh_running_job_is_left_to_its_worker(db_path, card_with_job):
    job_id = card_with_job["image_job_id"]
    _orphan(db_path, job_id, updated_at="2999-01-01T00:00:00Z")

    client = FakeGenerationClient()
    assert run_pending_image_jobs(db_path, client=client, sleep=_no_sleep) == {}
    assert run_image_job(db_path, job_id, client=client, sleep=_no_sleep) == "running"
    assert client.image_calls == []


def test_run_image_job_reclaims_after_short_lease(db_path, card_with_job):
    job_id = card_with_job["image_job_id"]
    _orphan(db_path, job_id, updated_at="2000-01-01T00:00:00Z")
    status = run_image_job(db_path, job_id, client=FakeGenerationClient(), lease_s=1.0, sleep=_no_sleep)
    assert status == "done"
