"""
SQLAlchemy models for the exam attempt lifecycle

Two layers live here:
- CATALOG: students, exams, questions. Read-only to the session core;
  owned and edited by the authoring side of the platform.
- ATTEMPT STORE: attempts, their answers, session activities and violations.
  Uniqueness of (student, exam, attempt_number) is enforced by the database.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, Text, Float, JSON,
    UniqueConstraint, Index, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from database.database import Base


class AttemptStatus(str, enum.Enum):
    """Lifecycle states of an attempt."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto-submitted"
    INCOMPLETE = "incomplete"


TERMINAL_STATUSES = (
    AttemptStatus.COMPLETED.value,
    AttemptStatus.SUBMITTED.value,
    AttemptStatus.AUTO_SUBMITTED.value,
    AttemptStatus.INCOMPLETE.value,
)


# ==========================================
# CATALOG: STUDENTS, EXAMS, QUESTIONS
# ==========================================

class Student(Base):
    """Student account. Credentials live with the identity provider, not here."""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Student(id={self.id}, email='{self.email}')>"


class Question(Base):
    """
    Question in the bank.
    options: [{"id": "a", "text": "...", "is_correct": true}, ...]
    correct_text is only used by fill-in-blank / essay questions.
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question_text = Column(Text, nullable=False, default="")
    question_type = Column(String(20), nullable=False, default="multiple-choice")  # multiple-choice, true-false, fill-in-blank, essay
    subject = Column(String(100), nullable=False, index=True)
    topic = Column(String(100), nullable=False, default="general")
    difficulty = Column(String(10), nullable=False, default="medium", index=True)  # easy, medium, hard
    marks = Column(Float, nullable=False, default=1)
    options = Column(JSON, nullable=False, default=list)
    correct_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Question(id={self.id}, subject='{self.subject}', difficulty='{self.difficulty}')>"


class Exam(Base):
    """
    Exam metadata consumed by the session core.
    duration_minutes is the per-student allowance; start_time/end_time is the schedule window.
    """
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    total_marks = Column(Float, nullable=True)  # falls back to the sum of question marks
    passing_marks = Column(Float, nullable=True)
    passing_percentage = Column(Float, nullable=True)
    allow_multiple_attempts = Column(Boolean, default=False, nullable=False, server_default="false")
    max_attempts = Column(Integer, nullable=True)  # only meaningful with allow_multiple_attempts
    negative_marking = Column(Boolean, default=False, nullable=False, server_default="false")
    is_proctored = Column(Boolean, default=False, nullable=False, server_default="false")
    is_active = Column(Boolean, default=True, nullable=False, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    questions = relationship(
        "ExamQuestion", back_populates="exam", cascade="all, delete-orphan",
        order_by="ExamQuestion.question_order",
    )
    eligible_students = relationship("ExamEligibility", back_populates="exam", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Exam(id={self.id}, title='{self.title}', duration={self.duration_minutes})>"


class ExamQuestion(Base):
    """Links questions to an exam in order. marks overrides the question's own marks when set."""
    __tablename__ = "exam_questions"
    __table_args__ = (UniqueConstraint("exam_id", "question_id", name="uq_exam_question"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    marks = Column(Float, nullable=True)
    negative_marks = Column(Float, nullable=False, default=0)
    question_order = Column(Integer, nullable=False)

    exam = relationship("Exam", back_populates="questions")
    question = relationship("Question")

    def __repr__(self):
        return f"<ExamQuestion(exam_id={self.exam_id}, q_id={self.question_id}, order={self.question_order})>"


class ExamEligibility(Base):
    """Explicit student list for an exam. An exam without rows is open to every student."""
    __tablename__ = "exam_eligibility"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_exam_eligibility"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    exam = relationship("Exam", back_populates="eligible_students")


# ==========================================
# ATTEMPT STORE
# ==========================================

class Attempt(Base):
    """
    One student's timed try at one exam.

    question_snapshot freezes the exam's question set at start:
    [{"question_id": 1, "marks": 2.0, "negative_marks": 0.0}, ...]
    Scoring columns are written exactly once, by the close pipeline.
    """
    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", "attempt_number", name="uq_attempt_number"),
        Index(
            "uq_attempt_one_in_progress", "student_id", "exam_id",
            unique=True,
            postgresql_where=text("status = 'in-progress'"),
            sqlite_where=text("status = 'in-progress'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=AttemptStatus.IN_PROGRESS.value, index=True)

    # Session
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    browser_info = Column(String(255), nullable=True)
    screen_resolution = Column(String(32), nullable=True)
    device_info = Column(String(255), nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    question_snapshot = Column(JSON, nullable=False, default=list)

    # Scoring
    total_marks = Column(Float, nullable=False, default=0)
    marks_obtained = Column(Float, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0)
    grade = Column(String(2), nullable=False, default="F")
    passed = Column(Boolean, nullable=False, default=False)
    rank = Column(Integer, nullable=True)
    percentile = Column(Float, nullable=True)

    # Stats
    total_questions = Column(Integer, nullable=False, default=0)
    attempted_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    incorrect_answers = Column(Integer, nullable=False, default=0)
    skipped_questions = Column(Integer, nullable=False, default=0)
    flagged_questions = Column(Integer, nullable=False, default=0)
    average_time_per_question = Column(Float, nullable=False, default=0)  # seconds
    total_time_spent = Column(Integer, nullable=False, default=0)  # minutes

    # {"subject_wise": [...], "topic_wise": [...], "difficulty_wise": {...}}
    analytics = Column(JSON, nullable=True)

    is_proctored = Column(Boolean, nullable=False, default=False)
    violation_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam")
    student = relationship("Student")
    answers = relationship(
        "AttemptAnswer", back_populates="attempt", cascade="all, delete-orphan",
        order_by="AttemptAnswer.id",
    )
    activities = relationship(
        "SessionActivity", back_populates="attempt", cascade="all, delete-orphan",
        order_by="SessionActivity.id",
    )
    violations = relationship(
        "Violation", back_populates="attempt", cascade="all, delete-orphan",
        order_by="Violation.id",
    )

    @property
    def question_ids(self):
        return [entry["question_id"] for entry in (self.question_snapshot or [])]

    def __repr__(self):
        return f"<Attempt(id={self.id}, student_id={self.student_id}, exam_id={self.exam_id}, n={self.attempt_number}, status='{self.status}')>"


class AttemptAnswer(Base):
    """One answer per question within an attempt. is_correct / marks_obtained are written only by the scorer."""
    __tablename__ = "attempt_answers"
    __table_args__ = (UniqueConstraint("attempt_id", "question_id", name="uq_attempt_answer_question"),)

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, nullable=False, index=True)  # no FK: the answer outlives a deleted question
    selected_options = Column(JSON, nullable=False, default=list)
    text_answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    marks_obtained = Column(Float, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)  # seconds
    flagged = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    attempt = relationship("Attempt", back_populates="answers")

    def __repr__(self):
        return f"<AttemptAnswer(attempt_id={self.attempt_id}, q_id={self.question_id}, selected={self.selected_options})>"


class SessionActivity(Base):
    """Ordered session activity log (start, pause, resume, submit, warning, violation, tab-switch, window-blur)."""
    __tablename__ = "session_activities"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(String(20), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    attempt = relationship("Attempt", back_populates="activities")

    def __repr__(self):
        return f"<SessionActivity(attempt_id={self.attempt_id}, type='{self.activity_type}')>"


class Violation(Base):
    """Proctoring violation. Append-only while the attempt is in progress."""
    __tablename__ = "violations"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    violation_type = Column(String(30), nullable=False, index=True)
    severity = Column(String(10), nullable=False, default="medium")
    description = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    attempt = relationship("Attempt", back_populates="violations")

    def __repr__(self):
        return f"<Violation(attempt_id={self.attempt_id}, type='{self.violation_type}', severity='{self.severity}')>"
