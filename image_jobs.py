from __future__ import annotations

"""Deferred card-art jobs.

Jobs are rows in `image_jobs`:

  pending -> running -> done
                     -> pending (retry) ... -> failed (after max attempts)

A job left in running longer than IMAGE_JOB_LEASE_S (worker died mid-call) is
claimable again, so a later drain finishes it.

run_image_job never raises into its caller. The card row is only ever touched
through cards.service.set_card_image (image reference), never deleted.
"""

import logging
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import config
from cards.service import set_card_image
from game_repo import GameRepo, new_id, utc_now_iso
from gemini.client import GenerationClient
from gemini.prompts import build_image_prompt

logger = logging.getLogger(__name__)

JOB_PENDING = "pending"
JOB_RUNNING = "running"
JOB_DONE = "done"
JOB_FAILED = "failed"


def enqueue_image_job(db_path: str, card_id: str, *, image_prompt: str, world_description: str = "") -> str:
    job_id = new_id("img")
    now = utc_now_iso()
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            cur.execute(
                """
                INSERT INTO image_jobs(
                    job_id, card_id, image_prompt, world_description, status, attempts,
                    last_error, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, 'pending', 0, NULL, ?, ?);
                """,
                (job_id, str(card_id), str(image_prompt), str(world_description or ""), now, now),
            )
    logger.info("image job enqueued: job_id=%s card_id=%s", job_id, card_id)
    return job_id


def _lease_cutoff(lease_s: float) -> str:
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=float(lease_s))
    return cutoff.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _claim(db_path: str, job_id: str, *, lease_s: float) -> Optional[Dict[str, Any]]:
    """pending (or stale running) -> running, +1 attempt. None if the job is not claimable."""
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            cur.execute(
                """
                UPDATE image_jobs
                SET status='running', attempts=attempts + 1, updated_at=?
                WHERE job_id=? AND (status='pending' OR (status='running' AND updated_at < ?));
                """,
                (utc_now_iso(), str(job_id), _lease_cutoff(lease_s)),
            )
            if cur.rowcount != 1:
                return None
            row = cur.execute("SELECT * FROM image_jobs WHERE job_id=?;", (str(job_id),)).fetchone()
            return dict(row)


def _finish(db_path: str, job_id: str, *, status: str, last_error: Optional[str]) -> None:
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            cur.execute(
                "UPDATE image_jobs SET status=?, last_error=?, updated_at=? WHERE job_id=?;",
                (status, last_error, utc_now_iso(), str(job_id)),
            )


def _store(db_path: str, card_id: str, data: bytes, mime_type: str) -> str:
    with GameRepo(db_path) as repo:
        with repo.transaction(immediate=True) as cur:
            return set_card_image(cur, card_id, data=data, mime_type=mime_type)


def _retry_delay(exc: Exception, attempt: int, base_delay_s: float) -> float:
    details = getattr(exc, "details", None) or {}
    retry_after = details.get("retry_after_s")
    if retry_after is not None:
        return float(retry_after)
    return base_delay_s * (2 ** (attempt - 1)) + random.random()


def run_image_job(
    db_path: str,
    job_id: str,
    *,
    client: GenerationClient,
    max_attempts: Optional[int] = None,
    base_delay_s: Optional[float] = None,
    lease_s: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Run one job to completion. Returns the final status (never raises)."""
    max_attempts = int(max_attempts or config.IMAGE_JOB_MAX_ATTEMPTS)
    base_delay_s = config.IMAGE_JOB_RETRY_BASE_DELAY_S if base_delay_s is None else float(base_delay_s)
    lease_s = config.IMAGE_JOB_LEASE_S if lease_s is None else float(lease_s)

    while True:
        try:
            job = _claim(db_path, job_id, lease_s=lease_s)
        except Exception as exc:
            logger.warning("image job claim failed: job_id=%s err=%s", job_id, exc, exc_info=True)
            return JOB_FAILED
        if job is None:
            try:
                with GameRepo(db_path) as repo:
                    return str(repo.get_image_job(job_id)["status"])
            except KeyError:
                logger.warning("image job not found: job_id=%s", job_id)
                return JOB_FAILED

        attempt = int(job["attempts"])
        try:
            data, mime = client.generate_image(build_image_prompt(job["image_prompt"], job["world_description"]))
            url = _store(db_path, job["card_id"], data, mime)
            _finish(db_path, job_id, status=JOB_DONE, last_error=None)
            logger.info("image job done: job_id=%s card_id=%s url=%s attempt=%d", job_id, job["card_id"], url, attempt)
            return JOB_DONE
        except Exception as exc:
            err = str(exc)[:1000]
            if attempt >= max_attempts:
                logger.error(
                    "image job failed: job_id=%s card_id=%s attempts=%d err=%s",
                    job_id,
                    job["card_id"],
                    attempt,
                    err,
                )
                _finish_quietly(db_path, job_id, status=JOB_FAILED, last_error=err)
                return JOB_FAILED

            delay = _retry_delay(exc, attempt, base_delay_s)
            logger.warning(
                "image job attempt failed: job_id=%s attempt=%d/%d retry_in=%.1fs err=%s",
                job_id,
                attempt,
                max_attempts,
                delay,
                err,
            )
            if not _finish_quietly(db_path, job_id, status=JOB_PENDING, last_error=err):
                return JOB_FAILED
            sleep(delay)


def _finish_quietly(db_path: str, job_id: str, *, status: str, last_error: Optional[str]) -> bool:
    try:
        _finish(db_path, job_id, status=status, last_error=last_error)
        return True
    except Exception as exc:
        logger.warning("image job status write failed: job_id=%s status=%s err=%s", job_id, status, exc, exc_info=True)
        return False


def run_pending_image_jobs(db_path: str, *, client: GenerationClient, **kwargs: Any) -> Dict[str, str]:
    """Drain every pending job and every orphaned running one. Returns {job_id: final_status}."""
    lease_s = kwargs.get("lease_s")
    lease_s = config.IMAGE_JOB_LEASE_S if lease_s is None else float(lease_s)
    with GameRepo(db_path) as repo:
        job_ids: List[str] = repo.list_image_job_ids(
            statuses=(JOB_PENDING,),
            stale_running_before=_lease_cutoff(lease_s),
        )
    results: Dict[str, str] = {}
    for job_id in job_ids:
        results[job_id] = run_image_job(db_path, job_id, client=client, **kwargs)
    return results
