"""
Answer Collector
Upserts client answer state into an open attempt, keyed by question id.
Never scores, never changes status.
"""

from typing import Iterable, List

from sqlalchemy.orm import Session

from database import crud
from database.models import Attempt
from sessions.errors import UnknownQuestion
from sessions.schemas import AnswerUpdate


def dedupe_updates(updates: Iterable[AnswerUpdate]) -> List[AnswerUpdate]:
    """Collapse a batch to one update per question; the later entry wins."""
    latest = {}
    for update in updates:
        latest.pop(update.question_id, None)
        latest[update.question_id] = update
    return list(latest.values())


def validate_updates(attempt: Attempt, updates: Iterable[AnswerUpdate]) -> None:
    allowed = set(attempt.question_ids)
    unknown = sorted({u.question_id for u in updates if u.question_id not in allowed})
    if unknown:
        raise UnknownQuestion(f"Questions {unknown} are not part of this exam")


def apply_updates(db: Session, attempt: Attempt, updates: Iterable[AnswerUpdate]) -> int:
    """
    Validate the whole batch first, then write it; an unknown question id
    rejects the batch without touching stored answers.
    Returns the number of answers written.
    """
    batch = dedupe_updates(updates)
    validate_updates(attempt, batch)

    for update in batch:
        crud.upsert_answer(
            db,
            attempt_id=attempt.id,
            question_id=update.question_id,
            selected_options=update.selected_options,
            text_answer=update.text_answer,
            time_spent=update.time_spent,
            flagged=update.flagged,
        )
    db.flush()
    return len(batch)
