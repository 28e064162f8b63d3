"""
Step 1: Scorer

Evaluates every question slot of the attempt's frozen question set:
- Unanswered or blank → skipped, 0 marks
- Choice questions    → exact-set match on option ids (no overlap credit)
- Text questions      → delegated to a TextEvaluator hook
Then derives the attempt stats and the overall percentage.
"""

import math
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from grading.schemas import (
    AnswerInput, AttemptStats, ExamQuestionRef, QuestionKey, ScoredAnswer, ScoreSheet,
    TEXT_QUESTION_TYPES,
)


TextEvaluator = Callable[[QuestionKey, str], bool]


def exact_text_evaluator(question: QuestionKey, text_answer: str) -> bool:
    """Default text check: case- and whitespace-insensitive equality with the stored answer."""
    if not question.correct_text:
        return False
    return " ".join(text_answer.split()).casefold() == " ".join(question.correct_text.split()).casefold()


class MarkingScheme(BaseModel):
    """
    Marks awarded per question. Exact match earns full marks, anything else 0.
    negative_marking deducts the slot's negative_marks for attempted wrong
    answers; each subject total (and so the attempt total) never drops below 0.
    Partial credit is not supported; subclass and override marks_for to add it.
    """
    negative_marking: bool = False

    def marks_for(self, ref: ExamQuestionRef, is_correct: bool, attempted: bool) -> float:
        if is_correct:
            return ref.marks
        if attempted and self.negative_marking and ref.negative_marks:
            return -ref.negative_marks
        return 0


def is_attempted(answer: Optional[AnswerInput]) -> bool:
    if answer is None:
        return False
    return bool(answer.selected_options) or bool((answer.text_answer or "").strip())


def is_correct_answer(question: Optional[QuestionKey], answer: AnswerInput, evaluator: TextEvaluator) -> bool:
    # Unresolvable catalog entry: nothing to compare against
    if question is None:
        return False
    if question.question_type in TEXT_QUESTION_TYPES:
        return bool(evaluator(question, answer.text_answer or ""))
    return set(answer.selected_options) == set(question.correct_options)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_stats(scored: List[ScoredAnswer]) -> AttemptStats:
    total_questions = len(scored)
    attempted = sum(1 for s in scored if s.attempted)
    correct = sum(1 for s in scored if s.is_correct)
    seconds = sum(s.time_spent for s in scored)

    return AttemptStats(
        total_questions=total_questions,
        attempted_questions=attempted,
        correct_answers=correct,
        incorrect_answers=attempted - correct,
        skipped_questions=total_questions - attempted,
        flagged_questions=sum(1 for s in scored if s.flagged),
        average_time_per_question=(seconds / attempted) if attempted else 0,
        total_time_spent=_round_half_up(seconds / 60),
    )


def score_answers(
    refs: List[ExamQuestionRef],
    answers: Iterable[AnswerInput],
    questions: Dict[int, QuestionKey],
    total_marks: float,
    evaluator: TextEvaluator = exact_text_evaluator,
    scheme: Optional[MarkingScheme] = None,
) -> ScoreSheet:
    """
    Step 1: Score one attempt.

    Args:
        refs: Frozen question set, in exam order
        answers: Saved answers (at most one per question id; the last one wins)
        questions: Catalog lookup; missing ids are scored as incorrect
        total_marks: Exam total snapshotted at attempt start
        evaluator: Correctness hook for fill-in-blank / essay questions
        scheme: Marking policy, exact-match-or-zero by default

    Returns:
        ScoreSheet with one ScoredAnswer per ref
    """
    scheme = scheme or MarkingScheme()
    by_question = {a.question_id: a for a in answers}

    scored: List[ScoredAnswer] = []
    for ref in refs:
        answer = by_question.get(ref.question_id)
        question = questions.get(ref.question_id)
        attempted = is_attempted(answer)
        correct = attempted and is_correct_answer(question, answer, evaluator)
        # No catalog entry: never deducted, since analytics cannot place it in a subject
        marks = scheme.marks_for(ref, correct, attempted) if question is not None else 0
        scored.append(ScoredAnswer(
            question_id=ref.question_id,
            has_record=answer is not None,
            attempted=attempted,
            is_correct=correct,
            marks_obtained=marks,
            max_marks=ref.marks,
            time_spent=answer.time_spent if answer else 0,
            flagged=answer.flagged if answer else False,
        ))

    marks_obtained = floored_total(scored, questions)
    percentage = (marks_obtained / total_marks) * 100 if total_marks > 0 else 0

    return ScoreSheet(
        answers=scored,
        stats=compute_stats(scored),
        total_marks=total_marks,
        marks_obtained=marks_obtained,
        percentage=percentage,
    )


def subject_marks(scored: List[ScoredAnswer], questions: Dict[int, QuestionKey]) -> Dict[str, float]:
    """Per-subject marks, each floored at 0. Slots without a catalog entry are left out."""
    totals: Dict[str, float] = {}
    for slot in scored:
        question = questions.get(slot.question_id)
        if question is None:
            continue
        totals[question.subject] = totals.get(question.subject, 0) + slot.marks_obtained
    return {subject: max(0, marks) for subject, marks in totals.items()}


def floored_total(scored: List[ScoredAnswer], questions: Dict[int, QuestionKey]) -> float:
    """
    Attempt total as the sum of the floored subject totals, so the subject
    breakdown always adds up to it. Slots without a catalog entry score 0.
    """
    return sum(subject_marks(scored, questions).values())
