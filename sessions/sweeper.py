"""
Deadline sweep
Auto-submits every open attempt whose deadline has passed. Runs from the rq
worker; races with a student's own submit are settled by close_attempt.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from database import crud
from database.models import AttemptStatus
from sessions.catalog import ExamSnapshot, SqlCatalogReader
from sessions.errors import AlreadySubmitted
from sessions.lifecycle import close_attempt, deadline_for

log = logging.getLogger("sessions.sweeper")


def sweep_expired_attempts(
    db: Session,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
) -> Dict[int, List[int]]:
    """
    Returns:
        exam_id → attempt ids closed by this sweep
    """
    now = now or datetime.now(timezone.utc)
    catalog = catalog or SqlCatalogReader(db)
    exams: Dict[int, Optional[ExamSnapshot]] = {}
    closed: Dict[int, List[int]] = {}

    candidates = [(a.id, a.exam_id) for a in crud.in_progress_attempts(db)]
    for attempt_id, exam_id in candidates:
        if exam_id not in exams:
            exams[exam_id] = catalog.get_exam(exam_id)
        exam = exams[exam_id]
        if exam is None:
            log.warning("Attempt %s references missing exam %s; left open", attempt_id, exam_id)
            continue

        attempt = crud.get_attempt(db, attempt_id)
        if attempt is None or now < deadline_for(attempt, exam):
            continue

        try:
            close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog)
        except AlreadySubmitted:
            log.info("Attempt %s closed by another trigger first", attempt_id)
            continue
        except Exception:
            log.exception("Auto-submit failed for attempt %s; retried on the next sweep", attempt_id)
            db.rollback()
            continue
        closed.setdefault(exam_id, []).append(attempt_id)

    if closed:
        log.info("Sweep auto-submitted %d attempts", sum(len(ids) for ids in closed.values()))
    return closed
