"""
Step 4: Grading Pipeline

score → aggregate analytics → compute grade → pass/fail.
Invoked only from the session close; persistence is the caller's job.
"""

from typing import Dict, Iterable, List, Optional

from grading.analytics import aggregate_analytics
from grading.grades import compute_grade
from grading.schemas import AnswerInput, ExamQuestionRef, GradingOutcome, QuestionKey
from grading.scorer import MarkingScheme, TextEvaluator, exact_text_evaluator, score_answers


def grade_attempt(
    refs: List[ExamQuestionRef],
    answers: Iterable[AnswerInput],
    questions: Dict[int, QuestionKey],
    total_marks: float,
    passing_threshold: float,
    evaluator: TextEvaluator = exact_text_evaluator,
    scheme: Optional[MarkingScheme] = None,
) -> GradingOutcome:
    sheet = score_answers(refs, answers, questions, total_marks, evaluator=evaluator, scheme=scheme)
    analytics = aggregate_analytics(sheet.answers, questions)
    return GradingOutcome(
        sheet=sheet,
        analytics=analytics,
        grade=compute_grade(sheet.percentage),
        passed=sheet.percentage >= passing_threshold,
    )
