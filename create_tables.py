"""
Database setup script
Creates the catalog and attempt store tables.
"""

from database.database import engine, Base
from database.models import (  # noqa: F401  (registers the tables on Base.metadata)
    Student, Exam, ExamEligibility, Question, ExamQuestion,
    Attempt, AttemptAnswer, SessionActivity, Violation,
)


def create_tables():
    """Create all tables in the database"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")
    print("\nCreated tables:")
    print("  - students, exams, exam_eligibility, questions, exam_questions")
    print("  - attempts, attempt_answers, session_activities, violations")


if __name__ == "__main__":
    create_tables()
