"""
Attempt store operations
All attempt reads and writes go through these functions.

Exclusivity is left to the database: attempt creation relies on the unique
constraints of the attempts table, and closing is a conditional UPDATE guarded
by status = 'in-progress'. Nothing here commits except where noted.
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from database.models import (
    Attempt, AttemptAnswer, AttemptStatus, SessionActivity, Violation,
)
from grading.ranking import RankEntry, assign_ranks
from grading.schemas import AnswerInput, GradingOutcome
from sessions.errors import AlreadyAttempted


CLOSED_FOR_REPORTING = (
    AttemptStatus.COMPLETED.value,
    AttemptStatus.SUBMITTED.value,
    AttemptStatus.AUTO_SUBMITTED.value,
)


# ==========================================
# ATTEMPT LOOKUP
# ==========================================

def get_attempt(db: Session, attempt_id: int) -> Optional[Attempt]:
    return db.query(Attempt).filter(Attempt.id == attempt_id).first()


def lock_attempt(db: Session, attempt_id: int) -> Optional[Attempt]:
    """Row-lock the attempt for the rest of the transaction so saves on one session apply in arrival order."""
    return (
        db.query(Attempt)
        .filter(Attempt.id == attempt_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_attempt_full(db: Session, attempt_id: int) -> Optional[Attempt]:
    """Attempt with answers, activities and violations loaded."""
    return (
        db.query(Attempt)
        .options(
            joinedload(Attempt.answers),
            joinedload(Attempt.activities),
            joinedload(Attempt.violations),
            joinedload(Attempt.exam),
        )
        .filter(Attempt.id == attempt_id)
        .first()
    )


def attempts_for_exam(db: Session, student_id: int, exam_id: int) -> List[Attempt]:
    return (
        db.query(Attempt)
        .filter(Attempt.student_id == student_id, Attempt.exam_id == exam_id)
        .order_by(Attempt.attempt_number.asc())
        .all()
    )


def in_progress_attempts(db: Session) -> List[Attempt]:
    return (
        db.query(Attempt)
        .filter(Attempt.status == AttemptStatus.IN_PROGRESS.value)
        .order_by(Attempt.start_time.asc())
        .all()
    )


# ==========================================
# ATTEMPT CREATION
# ==========================================

def insert_attempt(db: Session, attempt: Attempt) -> Attempt:
    """
    Insert a new attempt. A concurrent start for the same (student, exam,
    attempt_number), or a second in-progress attempt, trips a unique
    constraint and surfaces as AlreadyAttempted.
    """
    db.add(attempt)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AlreadyAttempted("An attempt for this exam is already in progress or was just created")
    return attempt


# ==========================================
# SESSION LOGS
# ==========================================

def add_activity(db: Session, attempt_id: int, activity_type: str, when: datetime, details: Optional[str] = None) -> SessionActivity:
    activity = SessionActivity(
        attempt_id=attempt_id,
        activity_type=activity_type,
        details=details,
        timestamp=when,
    )
    db.add(activity)
    return activity


def add_violation(db: Session, attempt: Attempt, violation_type: str, severity: str, description: Optional[str], when: datetime) -> Violation:
    violation = Violation(
        attempt_id=attempt.id,
        violation_type=violation_type,
        severity=severity,
        description=description,
        timestamp=when,
    )
    db.add(violation)
    db.flush()
    attempt.violation_count = (
        db.query(func.count(Violation.id)).filter(Violation.attempt_id == attempt.id).scalar()
    )
    return violation


# ==========================================
# ANSWERS
# ==========================================

def get_answers(db: Session, attempt_id: int) -> List[AttemptAnswer]:
    return (
        db.query(AttemptAnswer)
        .filter(AttemptAnswer.attempt_id == attempt_id)
        .order_by(AttemptAnswer.id.asc())
        .all()
    )


def upsert_answer(db: Session, attempt_id: int, question_id: int, selected_options: List[str],
                  text_answer: Optional[str], time_spent: int, flagged: bool) -> AttemptAnswer:
    """Replace the saved answer for a question, or insert it if new."""
    existing = (
        db.query(AttemptAnswer)
        .filter(AttemptAnswer.attempt_id == attempt_id, AttemptAnswer.question_id == question_id)
        .first()
    )
    if existing:
        existing.selected_options = list(selected_options)
        existing.text_answer = text_answer
        existing.time_spent = time_spent
        existing.flagged = flagged
        return existing

    answer = AttemptAnswer(
        attempt_id=attempt_id,
        question_id=question_id,
        selected_options=list(selected_options),
        text_answer=text_answer,
        time_spent=time_spent,
        flagged=flagged,
    )
    db.add(answer)
    return answer


def answer_inputs(answers: List[AttemptAnswer]) -> List[AnswerInput]:
    return [
        AnswerInput(
            question_id=a.question_id,
            selected_options=a.selected_options or [],
            text_answer=a.text_answer,
            time_spent=a.time_spent or 0,
            flagged=a.flagged,
        )
        for a in answers
    ]


# ==========================================
# CLOSE
# ==========================================

def claim_close(db: Session, attempt_id: int, closing_status: str, now: datetime) -> bool:
    """
    Atomically move an attempt out of in-progress. Exactly one concurrent
    caller sees True; the others see False and must not write anything.
    """
    result = db.execute(
        update(Attempt)
        .where(Attempt.id == attempt_id, Attempt.status == AttemptStatus.IN_PROGRESS.value)
        .values(status=closing_status, end_time=now, submitted_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def persist_outcome(db: Session, attempt: Attempt, outcome: GradingOutcome, answers: List[AttemptAnswer]) -> None:
    """Write the pipeline output onto the attempt and its saved answers."""
    by_question: Dict[int, AttemptAnswer] = {a.question_id: a for a in answers}
    for scored in outcome.sheet.answers:
        row = by_question.get(scored.question_id)
        if row is None:
            continue
        row.is_correct = scored.is_correct
        row.marks_obtained = scored.marks_obtained

    stats = outcome.sheet.stats
    attempt.marks_obtained = outcome.sheet.marks_obtained
    attempt.percentage = outcome.sheet.percentage
    attempt.grade = outcome.grade
    attempt.passed = outcome.passed
    attempt.total_questions = stats.total_questions
    attempt.attempted_questions = stats.attempted_questions
    attempt.correct_answers = stats.correct_answers
    attempt.incorrect_answers = stats.incorrect_answers
    attempt.skipped_questions = stats.skipped_questions
    attempt.flagged_questions = stats.flagged_questions
    attempt.average_time_per_question = stats.average_time_per_question
    attempt.total_time_spent = stats.total_time_spent
    attempt.analytics = outcome.analytics.model_dump()


# ==========================================
# REPORTING
# ==========================================

def closed_attempts_for_exam(db: Session, exam_id: int) -> List[Attempt]:
    return (
        db.query(Attempt)
        .filter(Attempt.exam_id == exam_id, Attempt.status.in_(CLOSED_FOR_REPORTING))
        .all()
    )


def exam_statistics(db: Session, exam_id: int) -> dict:
    """Aggregate over completed attempts: counts, score spread, pass rate, average time."""
    row = (
        db.query(
            func.count(Attempt.id).label("total_attempts"),
            func.avg(Attempt.percentage).label("average_score"),
            func.max(Attempt.percentage).label("highest_score"),
            func.min(Attempt.percentage).label("lowest_score"),
            func.sum(case((Attempt.passed.is_(True), 1), else_=0)).label("passed"),
            func.avg(Attempt.total_time_spent).label("average_time"),
        )
        .filter(Attempt.exam_id == exam_id, Attempt.status.in_(CLOSED_FOR_REPORTING))
        .one()
    )
    total = row.total_attempts or 0
    return {
        "exam_id": exam_id,
        "total_attempts": total,
        "average_score": float(row.average_score or 0),
        "highest_score": float(row.highest_score or 0),
        "lowest_score": float(row.lowest_score or 0),
        "pass_rate": (float(row.passed or 0) / total) * 100 if total else 0,
        "average_time": float(row.average_time or 0),
    }


def leaderboard(db: Session, exam_id: int, limit: int = 10) -> List[Attempt]:
    return (
        db.query(Attempt)
        .options(joinedload(Attempt.student))
        .filter(Attempt.exam_id == exam_id, Attempt.status.in_(CLOSED_FOR_REPORTING))
        .order_by(Attempt.percentage.desc(), Attempt.submitted_at.asc())
        .limit(limit)
        .all()
    )


def student_history(db: Session, student_id: int) -> List[Attempt]:
    return (
        db.query(Attempt)
        .options(joinedload(Attempt.exam))
        .filter(Attempt.student_id == student_id)
        .order_by(Attempt.start_time.desc())
        .all()
    )


def update_exam_ranks(db: Session, exam_id: int) -> int:
    """Recompute rank/percentile for every completed attempt of an exam. Commits."""
    attempts = closed_attempts_for_exam(db, exam_id)
    ranks = assign_ranks([RankEntry(a.id, a.percentage) for a in attempts])
    for attempt in attempts:
        result = ranks[attempt.id]
        attempt.rank = result.rank
        attempt.percentile = result.percentile
    db.commit()
    return len(attempts)
