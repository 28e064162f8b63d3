import os
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = "sqlite://"

import pytest

from auth.security import create_access_token
from database.database import Base, SessionLocal, engine
from database.models import Exam, ExamEligibility, ExamQuestion, Question, Student


WINDOW_START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    """A clock reading relative to the seeded exam window opening."""
    return WINDOW_START + timedelta(minutes=minutes)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def student(db):
    s = Student(email="asha@example.edu", full_name="Asha Rao")
    db.add(s)
    db.commit()
    return s


@pytest.fixture
def other_student(db):
    s = Student(email="liam@example.edu", full_name="Liam Ortiz")
    db.add(s)
    db.commit()
    return s


@pytest.fixture
def questions(db):
    rows = [
        Question(
            question_text="Which quantity is a vector?",
            question_type="multiple-choice",
            subject="Physics", topic="Kinematics", difficulty="easy", marks=2,
            options=[
                {"id": "a", "text": "Velocity", "is_correct": True},
                {"id": "b", "text": "Speed", "is_correct": False},
            ],
        ),
        Question(
            question_text="Select all primary colours of light.",
            question_type="multiple-choice",
            subject="Physics", topic="Optics", difficulty="medium", marks=3,
            options=[
                {"id": "a", "text": "Red", "is_correct": True},
                {"id": "b", "text": "Yellow", "is_correct": False},
                {"id": "c", "text": "Blue", "is_correct": True},
            ],
        ),
        Question(
            question_text="Electrons shared between atoms form a ____.",
            question_type="fill-in-blank",
            subject="Chemistry", topic="Bonding", difficulty="hard", marks=5,
            options=[],
            correct_text="Covalent Bond",
        ),
    ]
    db.add_all(rows)
    db.commit()
    return rows


def make_exam(db, questions, negative_marks=0, **overrides) -> Exam:
    fields = dict(
        title="Midterm Science",
        duration_minutes=60,
        start_time=WINDOW_START,
        end_time=WINDOW_END,
        passing_percentage=40,
        allow_multiple_attempts=False,
    )
    fields.update(overrides)
    exam = Exam(**fields)
    db.add(exam)
    db.flush()
    for order, q in enumerate(questions):
        db.add(ExamQuestion(exam_id=exam.id, question_id=q.id, question_order=order, negative_marks=negative_marks))
    db.commit()
    return exam


@pytest.fixture
def exam(db, questions):
    return make_exam(db, questions)


@pytest.fixture
def restrict_to(db):
    def _restrict(exam, *students):
        for s in students:
            db.add(ExamEligibility(exam_id=exam.id, student_id=s.id))
        db.commit()
    return _restrict


def bearer(student) -> dict:
    token = create_access_token({"sub": str(student.id), "role": "student", "email": student.email})
    return {"Authorization": f"Bearer {token}"}
