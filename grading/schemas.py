"""
Pydantic types for the grading pipeline.

Inputs are detached snapshots (exam question refs, catalog question keys,
saved answers) so the pipeline never touches the database.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


DIFFICULTY_LEVELS = ("easy", "medium", "hard")
TEXT_QUESTION_TYPES = ("fill-in-blank", "essay")


# ─── Inputs ────────────────────────────────────────────────────────────────────

class ExamQuestionRef(BaseModel):
    """One slot of the exam's question set, frozen at attempt start."""
    question_id: int
    marks: float
    negative_marks: float = 0


class QuestionKey(BaseModel):
    """Catalog facts about a question needed to score and group it."""
    question_id: int
    question_type: str = "multiple-choice"
    subject: str
    topic: str = "general"
    difficulty: str = "medium"
    marks: float = 1
    correct_options: List[str] = Field(default_factory=list)
    correct_text: Optional[str] = None


class AnswerInput(BaseModel):
    """A saved answer as it stands when the session closes."""
    question_id: int
    selected_options: List[str] = Field(default_factory=list)
    text_answer: Optional[str] = None
    time_spent: int = Field(0, ge=0)
    flagged: bool = False


# ─── Step 1 output ─────────────────────────────────────────────────────────────

class ScoredAnswer(BaseModel):
    """Scorer verdict for one question slot (answered or not)."""
    question_id: int
    has_record: bool            # a saved answer existed for this question
    attempted: bool
    is_correct: bool = False
    marks_obtained: float = 0
    max_marks: float = 0
    time_spent: int = 0
    flagged: bool = False


class AttemptStats(BaseModel):
    total_questions: int = 0
    attempted_questions: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    skipped_questions: int = 0
    flagged_questions: int = 0
    average_time_per_question: float = 0  # seconds
    total_time_spent: int = 0             # minutes


class ScoreSheet(BaseModel):
    answers: List[ScoredAnswer]
    stats: AttemptStats
    total_marks: float
    marks_obtained: float
    percentage: float


# ─── Step 2 output ─────────────────────────────────────────────────────────────

class SubjectBreakdown(BaseModel):
    subject: str
    total_questions: int = 0
    correct_answers: int = 0
    marks_obtained: float = 0
    total_marks: float = 0
    percentage: float = 0


class TopicBreakdown(BaseModel):
    subject: str
    topic: str
    total_questions: int = 0
    correct_answers: int = 0
    percentage: float = 0


class DifficultyBucket(BaseModel):
    total: int = 0
    correct: int = 0
    percentage: float = 0


class DifficultyBreakdown(BaseModel):
    easy: DifficultyBucket = Field(default_factory=DifficultyBucket)
    medium: DifficultyBucket = Field(default_factory=DifficultyBucket)
    hard: DifficultyBucket = Field(default_factory=DifficultyBucket)


class AttemptAnalytics(BaseModel):
    subject_wise: List[SubjectBreakdown] = Field(default_factory=list)
    topic_wise: List[TopicBreakdown] = Field(default_factory=list)
    difficulty_wise: DifficultyBreakdown = Field(default_factory=DifficultyBreakdown)


# ─── Final output ──────────────────────────────────────────────────────────────

class GradingOutcome(BaseModel):
    sheet: ScoreSheet
    analytics: AttemptAnalytics
    grade: str
    passed: bool
