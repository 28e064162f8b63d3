"""
Violation & Integrity Tracker
Append-only proctoring log for open attempts. Violations are surfaced for
human review; they never change scores and never block a submit.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from database import crud
from database.models import Attempt, AttemptStatus
from sessions.errors import SessionNotActive
from sessions.lifecycle import load_owned_attempt
from sessions.schemas import ViolationInput

log = logging.getLogger("sessions.violations")


def record_violation(
    db: Session,
    attempt_id: int,
    student_id: int,
    violation: ViolationInput,
    now: Optional[datetime] = None,
) -> int:
    """Append a violation and a matching 'violation' activity. Returns the new violation_count."""
    now = now or datetime.now(timezone.utc)

    attempt = load_owned_attempt(db, attempt_id, student_id, lock=True)
    if attempt.status != AttemptStatus.IN_PROGRESS.value:
        raise SessionNotActive(f"Attempt is {attempt.status}")

    crud.add_violation(db, attempt, violation.violation_type, violation.severity, violation.description, now)
    crud.add_activity(db, attempt.id, "violation", now, details=violation.violation_type)
    db.commit()

    log.warning(
        "Violation on attempt %s: %s (%s), count=%s",
        attempt.id, violation.violation_type, violation.severity, attempt.violation_count,
    )
    return attempt.violation_count


def violation_summary(attempt: Attempt) -> dict:
    """Counts by type and severity for reviewers."""
    return {
        "violation_count": attempt.violation_count,
        "by_type": dict(Counter(v.violation_type for v in attempt.violations)),
        "by_severity": dict(Counter(v.severity for v in attempt.violations)),
    }
