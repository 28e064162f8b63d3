"""
Step 2: Analytics Aggregator

Groups the scored question slots by subject, (subject, topic) and difficulty.
The lookup tables are local to each call.

A slot whose question can no longer be resolved in the catalog is left out of
every breakdown, but still counts toward the attempt's totalQuestions and
totalMarks (those come from the frozen question set, not from here).
"""

import logging
from typing import Dict, List, Tuple

from grading.schemas import (
    AttemptAnalytics, DifficultyBreakdown, DifficultyBucket, QuestionKey, ScoredAnswer,
    SubjectBreakdown, TopicBreakdown, DIFFICULTY_LEVELS,
)
from grading.scorer import subject_marks

log = logging.getLogger("grading.analytics")


def _pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0


def aggregate_analytics(scored: List[ScoredAnswer], questions: Dict[int, QuestionKey]) -> AttemptAnalytics:
    """
    Step 2: Build subject-, topic- and difficulty-wise breakdowns.

    Args:
        scored: Scorer output, one entry per question slot
        questions: Catalog lookup by question id

    Returns:
        AttemptAnalytics (groups in first-seen order)
    """
    subjects: Dict[str, SubjectBreakdown] = {}
    topics: Dict[Tuple[str, str], TopicBreakdown] = {}
    difficulty = {level: DifficultyBucket() for level in DIFFICULTY_LEVELS}

    for slot in scored:
        question = questions.get(slot.question_id)
        if question is None:
            log.warning("Question %s not found in catalog; left out of analytics", slot.question_id)
            continue

        subject = subjects.setdefault(question.subject, SubjectBreakdown(subject=question.subject))
        subject.total_questions += 1
        subject.total_marks += slot.max_marks
        subject.marks_obtained += slot.marks_obtained
        if slot.is_correct:
            subject.correct_answers += 1

        key = (question.subject, question.topic)
        topic = topics.setdefault(key, TopicBreakdown(subject=question.subject, topic=question.topic))
        topic.total_questions += 1
        if slot.is_correct:
            topic.correct_answers += 1

        level = (question.difficulty or "").lower()
        if level not in difficulty:
            log.warning("Question %s has unknown difficulty %r; left out of difficulty buckets",
                        slot.question_id, question.difficulty)
            continue
        difficulty[level].total += 1
        if slot.is_correct:
            difficulty[level].correct += 1

    floored = subject_marks(scored, questions)
    for subject in subjects.values():
        subject.marks_obtained = floored[subject.subject]
        subject.percentage = _pct(subject.marks_obtained, subject.total_marks)
    for topic in topics.values():
        topic.percentage = _pct(topic.correct_answers, topic.total_questions)
    for bucket in difficulty.values():
        bucket.percentage = _pct(bucket.correct, bucket.total)

    return AttemptAnalytics(
        subject_wise=list(subjects.values()),
        topic_wise=list(topics.values()),
        difficulty_wise=DifficultyBreakdown(**difficulty),
    )
