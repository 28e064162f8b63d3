"""
Read-only view of the exam and question catalog.
The session core only ever sees ExamSnapshot / QuestionKey, never the ORM rows.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload

from database.models import Exam, ExamEligibility, ExamQuestion, Question
from grading.schemas import ExamQuestionRef, QuestionKey


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes come back naive from some drivers; they are always UTC."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class ExamSnapshot(BaseModel):
    exam_id: int
    title: str
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    is_active: bool
    allow_multiple_attempts: bool
    max_attempts: Optional[int] = None
    negative_marking: bool = False
    is_proctored: bool = False
    total_marks: float
    passing_threshold: float  # percentage
    questions: List[ExamQuestionRef]


def _exam_question_ref(link: ExamQuestion) -> ExamQuestionRef:
    marks = link.marks
    if marks is None:
        marks = link.question.marks if link.question is not None else 0
    return ExamQuestionRef(
        question_id=link.question_id,
        marks=marks,
        negative_marks=link.negative_marks or 0,
    )


def _passing_threshold(exam: Exam, total_marks: float) -> float:
    if exam.passing_percentage is not None:
        return exam.passing_percentage
    if exam.passing_marks is not None and total_marks > 0:
        return (exam.passing_marks / total_marks) * 100
    return 0


def question_key(question: Question) -> QuestionKey:
    return QuestionKey(
        question_id=question.id,
        question_type=question.question_type,
        subject=question.subject,
        topic=question.topic,
        difficulty=question.difficulty,
        marks=question.marks,
        correct_options=[str(o["id"]) for o in (question.options or []) if o.get("is_correct")],
        correct_text=question.correct_text,
    )


class SqlCatalogReader:
    """Catalog reader over the catalog tables of the same database."""

    def __init__(self, db: Session):
        self.db = db

    def get_exam(self, exam_id: int) -> Optional[ExamSnapshot]:
        exam = (
            self.db.query(Exam)
            .options(joinedload(Exam.questions).joinedload(ExamQuestion.question))
            .filter(Exam.id == exam_id)
            .first()
        )
        if not exam:
            return None

        refs = [_exam_question_ref(link) for link in exam.questions]
        total_marks = exam.total_marks if exam.total_marks is not None else sum(r.marks for r in refs)

        return ExamSnapshot(
            exam_id=exam.id,
            title=exam.title,
            duration_minutes=exam.duration_minutes,
            start_time=as_utc(exam.start_time),
            end_time=as_utc(exam.end_time),
            is_active=exam.is_active,
            allow_multiple_attempts=exam.allow_multiple_attempts,
            max_attempts=exam.max_attempts,
            negative_marking=exam.negative_marking,
            is_proctored=exam.is_proctored,
            total_marks=total_marks,
            passing_threshold=_passing_threshold(exam, total_marks),
            questions=refs,
        )

    def is_eligible(self, exam_id: int, student_id: int) -> bool:
        listed = self.db.query(ExamEligibility.student_id).filter(ExamEligibility.exam_id == exam_id).all()
        if not listed:
            return True
        return any(row.student_id == student_id for row in listed)

    def get_questions(self, question_ids: Iterable[int]) -> Dict[int, QuestionKey]:
        ids = list(question_ids)
        if not ids:
            return {}
        rows = self.db.query(Question).filter(Question.id.in_(ids)).all()
        return {q.id: question_key(q) for q in rows}
