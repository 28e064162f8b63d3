"""
Background jobs executed by the rq worker (worker.py), NOT by FastAPI.
"""

import logging
import os
from datetime import timedelta
from typing import Dict, List, Optional

from rq import Queue

from database import crud
from database.database import SessionLocal
from database.redis_client import get_redis
from sessions.lifecycle import force_close
from sessions.sweeper import sweep_expired_attempts

log = logging.getLogger("services.tasks")

SWEEP_QUEUE = os.getenv("SWEEP_QUEUE", "session_sweeps")
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "60"))
SWEEP_CHAIN_KEY = f"{SWEEP_QUEUE}:sweep_chain"


def get_queue() -> Queue:
    return Queue(SWEEP_QUEUE, connection=get_redis())


def _chain_ttl() -> int:
    return SWEEP_INTERVAL_SECONDS * 3


def _mark_chain_alive() -> None:
    get_redis().set(SWEEP_CHAIN_KEY, "1", ex=_chain_ttl())


def seed_sweep() -> bool:
    """
    Start the sweep chain unless one is already running. The chain refreshes
    SWEEP_CHAIN_KEY on every run, so the key only lapses once the chain has
    been dead for a few intervals.
    """
    if not get_redis().set(SWEEP_CHAIN_KEY, "1", nx=True, ex=_chain_ttl()):
        return False
    get_queue().enqueue(run_sweep)
    return True


def run_sweep(reschedule: bool = True) -> Dict[int, List[int]]:
    """Auto-submit expired attempts, refresh rankings of the exams touched, then queue the next sweep."""
    db = SessionLocal()
    try:
        closed = sweep_expired_attempts(db)
        for exam_id in closed:
            crud.update_exam_ranks(db, exam_id)
        return closed
    finally:
        db.close()
        if reschedule:
            get_queue().enqueue_in(timedelta(seconds=SWEEP_INTERVAL_SECONDS), run_sweep)
            _mark_chain_alive()


def force_close_attempt(attempt_id: int, reason: Optional[str] = None) -> dict:
    """Administrative close; the attempt is recorded as incomplete."""
    db = SessionLocal()
    try:
        result = force_close(db, attempt_id, reason=reason)
        crud.update_exam_ranks(db, crud.get_attempt(db, attempt_id).exam_id)
        return result.model_dump(mode="json")
    finally:
        db.close()


def refresh_exam_rankings(exam_id: int) -> int:
    db = SessionLocal()
    try:
        count = crud.update_exam_ranks(db, exam_id)
        log.info("Ranks refreshed for exam %s (%d attempts)", exam_id, count)
        return count
    finally:
        db.close()
