"""
Session State Machine
NotStarted → in-progress → {submitted, auto-submitted, incomplete}

The closing status carries the scored payload; there is no later hop to
'completed'. Every close path funnels through close_attempt, which claims the
attempt with a conditional UPDATE before writing anything, so concurrent
submit / auto-submit / force-close triggers produce exactly one scored outcome.

Deadlines are recomputed server-side on every call that touches an open
session; client timers are never trusted.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from database import crud
from database.models import Attempt, AttemptStatus
from grading.pipeline import grade_attempt
from grading.schemas import ExamQuestionRef
from grading.scorer import MarkingScheme, TextEvaluator, exact_text_evaluator
from sessions import collector
from sessions.catalog import ExamSnapshot, SqlCatalogReader, as_utc
from sessions.errors import (
    AlreadyAttempted, AlreadySubmitted, AttemptNotFound, ExamNotActive, ExamNotFound,
    InvalidSession, NotEligible, SessionNotActive,
)
from sessions.schemas import ActivityInput, AnswerUpdate, ClientInfo, StartResult, SubmitResult

log = logging.getLogger("sessions.lifecycle")

IN_PROGRESS = AttemptStatus.IN_PROGRESS.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ─── Helpers ───────────────────────────────────────────────────────────────────

def deadline_for(attempt: Attempt, exam: ExamSnapshot) -> datetime:
    """The earlier of the student's personal time limit and the exam's schedule end."""
    personal_end = as_utc(attempt.start_time) + timedelta(minutes=attempt.duration_minutes)
    return min(personal_end, exam.end_time)


def load_owned_attempt(db: Session, attempt_id: int, student_id: int, lock: bool = False) -> Attempt:
    attempt = crud.lock_attempt(db, attempt_id) if lock else crud.get_attempt(db, attempt_id)
    if attempt is None:
        raise AttemptNotFound()
    if attempt.student_id != student_id:
        raise InvalidSession()
    return attempt


def _exam_for(catalog: SqlCatalogReader, exam_id: int) -> ExamSnapshot:
    exam = catalog.get_exam(exam_id)
    if exam is None:
        raise ExamNotFound()
    return exam


def _result(attempt: Attempt) -> SubmitResult:
    return SubmitResult(
        attempt_id=attempt.id,
        status=attempt.status,
        marks_obtained=attempt.marks_obtained,
        total_marks=attempt.total_marks,
        percentage=attempt.percentage,
        grade=attempt.grade,
        passed=attempt.passed,
        submitted_at=as_utc(attempt.submitted_at),
    )


# ─── Start ─────────────────────────────────────────────────────────────────────

def start_session(
    db: Session,
    student_id: int,
    exam_id: int,
    client: Optional[ClientInfo] = None,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
) -> StartResult:
    """Open a new attempt for a student. Raises ExamNotFound, NotEligible, ExamNotActive or AlreadyAttempted."""
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)
    client = client or ClientInfo()

    exam = _exam_for(catalog, exam_id)
    if not catalog.is_eligible(exam_id, student_id):
        raise NotEligible()
    if not exam.is_active:
        raise ExamNotActive("Exam is not available")
    if now < exam.start_time:
        raise ExamNotActive("Exam has not started yet")
    if now >= exam.end_time:
        raise ExamNotActive("Exam has ended")

    existing = crud.attempts_for_exam(db, student_id, exam_id)

    # An abandoned session past its deadline is closed before it can block a retry
    expired = [a for a in existing if a.status == IN_PROGRESS and now >= deadline_for(a, exam)]
    for attempt in expired:
        log.info("Attempt %s expired before restart; auto-submitting", attempt.id)
        try:
            close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog)
        except AlreadySubmitted:
            log.info("Attempt %s was closed concurrently", attempt.id)
    if expired:
        existing = crud.attempts_for_exam(db, student_id, exam_id)

    if any(a.status == IN_PROGRESS for a in existing):
        raise AlreadyAttempted("An attempt for this exam is already in progress")
    if existing and not exam.allow_multiple_attempts:
        raise AlreadyAttempted()
    if exam.max_attempts and len(existing) >= exam.max_attempts:
        raise AlreadyAttempted(f"Attempt limit of {exam.max_attempts} reached")

    attempt = Attempt(
        student_id=student_id,
        exam_id=exam_id,
        attempt_number=max((a.attempt_number for a in existing), default=0) + 1,
        status=IN_PROGRESS,
        start_time=now,
        duration_minutes=exam.duration_minutes,
        question_snapshot=[ref.model_dump() for ref in exam.questions],
        total_marks=exam.total_marks,
        total_questions=len(exam.questions),
        skipped_questions=len(exam.questions),
        is_proctored=exam.is_proctored,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        browser_info=client.browser_info,
        screen_resolution=client.screen_resolution,
        device_info=client.device_info,
    )
    crud.insert_attempt(db, attempt)
    crud.add_activity(db, attempt.id, "start", now)
    db.commit()

    log.info("Attempt %s started: student=%s exam=%s n=%s", attempt.id, student_id, exam_id, attempt.attempt_number)

    return StartResult(
        attempt_id=attempt.id,
        attempt_number=attempt.attempt_number,
        start_time=now,
        duration=exam.duration_minutes,
        deadline=deadline_for(attempt, exam),
        total_questions=attempt.total_questions,
        total_marks=attempt.total_marks,
    )


# ─── Progress ──────────────────────────────────────────────────────────────────

def save_progress(
    db: Session,
    attempt_id: int,
    student_id: int,
    answers: List[AnswerUpdate],
    activities: Optional[List[ActivityInput]] = None,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
) -> int:
    """
    Upsert answers (and client activity events) into an open attempt.
    Past the deadline the attempt is auto-submitted instead and
    SessionNotActive is raised.
    """
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)

    attempt = load_owned_attempt(db, attempt_id, student_id, lock=True)
    if attempt.status != IN_PROGRESS:
        raise SessionNotActive(f"Attempt is {attempt.status}")

    exam = _exam_for(catalog, attempt.exam_id)
    if now >= deadline_for(attempt, exam):
        close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog)
        raise SessionNotActive("Exam time expired, attempt auto-submitted")

    written = collector.apply_updates(db, attempt, answers)
    for activity in activities or []:
        crud.add_activity(db, attempt.id, activity.activity_type, now, details=activity.details)
    db.commit()
    return written


# ─── Close ─────────────────────────────────────────────────────────────────────

def close_attempt(
    db: Session,
    attempt: Attempt,
    closing_status: str,
    now: datetime,
    exam: ExamSnapshot,
    catalog: SqlCatalogReader,
    final_answers: Optional[List[AnswerUpdate]] = None,
    evaluator: TextEvaluator = exact_text_evaluator,
    reason: Optional[str] = None,
) -> SubmitResult:
    """
    Exclusive close. The attempt is claimed first; a caller that loses the
    claim (or finds the attempt already closed) gets AlreadySubmitted and
    leaves the stored record untouched.
    """
    if attempt.status != IN_PROGRESS:
        raise AlreadySubmitted(f"Attempt already closed ({attempt.status})")

    if final_answers:
        collector.validate_updates(attempt, final_answers)

    if not crud.claim_close(db, attempt.id, closing_status, now):
        db.rollback()
        raise AlreadySubmitted()

    try:
        db.refresh(attempt)
        if final_answers:
            collector.apply_updates(db, attempt, final_answers)

        answers = crud.get_answers(db, attempt.id)
        outcome = grade_attempt(
            refs=[ExamQuestionRef(**entry) for entry in attempt.question_snapshot],
            answers=crud.answer_inputs(answers),
            questions=catalog.get_questions(attempt.question_ids),
            total_marks=attempt.total_marks,
            passing_threshold=exam.passing_threshold,
            evaluator=evaluator,
            scheme=MarkingScheme(negative_marking=exam.negative_marking),
        )
        crud.persist_outcome(db, attempt, outcome, answers)
        crud.add_activity(db, attempt.id, "submit", now, details=reason or closing_status)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(
        "Attempt %s closed as %s: %.2f/%.2f (%.2f%%, %s)",
        attempt.id, closing_status, attempt.marks_obtained, attempt.total_marks,
        attempt.percentage, attempt.grade,
    )
    return _result(attempt)


def submit(
    db: Session,
    attempt_id: int,
    student_id: int,
    answers: Optional[List[AnswerUpdate]] = None,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
    evaluator: TextEvaluator = exact_text_evaluator,
) -> SubmitResult:
    """
    Student-initiated close. A submit that arrives at or after the deadline is
    turned into an auto-submit and its unsaved answers are discarded.
    """
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)

    attempt = load_owned_attempt(db, attempt_id, student_id)
    if attempt.status != IN_PROGRESS:
        raise AlreadySubmitted(f"Attempt already closed ({attempt.status})")

    exam = _exam_for(catalog, attempt.exam_id)
    if now >= deadline_for(attempt, exam):
        if answers:
            log.warning("Late submit on attempt %s; discarding %d unsaved answers", attempt.id, len(answers))
        return close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog, evaluator=evaluator)

    return close_attempt(
        db, attempt, AttemptStatus.SUBMITTED.value, now, exam, catalog,
        final_answers=answers, evaluator=evaluator,
    )


def auto_submit(
    db: Session,
    attempt_id: int,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
    evaluator: TextEvaluator = exact_text_evaluator,
) -> Optional[SubmitResult]:
    """Server-side close once the deadline has passed. Returns None while time remains."""
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)

    attempt = crud.get_attempt(db, attempt_id)
    if attempt is None:
        raise AttemptNotFound()
    exam = _exam_for(catalog, attempt.exam_id)
    if attempt.status == IN_PROGRESS and now < deadline_for(attempt, exam):
        return None
    return close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog, evaluator=evaluator)


def force_close(
    db: Session,
    attempt_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
) -> SubmitResult:
    """Administrative close; the attempt is scored on its saved answers and marked incomplete."""
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)

    attempt = crud.get_attempt(db, attempt_id)
    if attempt is None:
        raise AttemptNotFound()
    exam = _exam_for(catalog, attempt.exam_id)
    return close_attempt(db, attempt, AttemptStatus.INCOMPLETE.value, now, exam, catalog, reason=reason)


# ─── Read ──────────────────────────────────────────────────────────────────────

def get_result(
    db: Session,
    attempt_id: int,
    student_id: int,
    now: Optional[datetime] = None,
    catalog: Optional[SqlCatalogReader] = None,
) -> Attempt:
    """Full attempt record. An open attempt past its deadline is auto-submitted first."""
    now = now or _now()
    catalog = catalog or SqlCatalogReader(db)

    attempt = load_owned_attempt(db, attempt_id, student_id)
    if attempt.status == IN_PROGRESS:
        exam = _exam_for(catalog, attempt.exam_id)
        if now >= deadline_for(attempt, exam):
            try:
                close_attempt(db, attempt, AttemptStatus.AUTO_SUBMITTED.value, now, exam, catalog)
            except AlreadySubmitted:
                log.info("Attempt %s was closed concurrently", attempt.id)

    return crud.get_attempt_full(db, attempt_id)
