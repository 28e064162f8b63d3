"""
Computed accessors over a stored attempt.
Every ratio resolves to 0 when its denominator is 0.
"""

from database.models import TERMINAL_STATUSES, AttemptStatus


def is_completed(status: str) -> bool:
    return status in (
        AttemptStatus.COMPLETED.value,
        AttemptStatus.SUBMITTED.value,
        AttemptStatus.AUTO_SUBMITTED.value,
    )


def is_closed(status: str) -> bool:
    return status in TERMINAL_STATUSES


def accuracy(correct_answers: int, attempted_questions: int) -> float:
    """Correct answers as a share of attempted questions."""
    return (correct_answers / attempted_questions) * 100 if attempted_questions else 0


def completion_rate(attempted_questions: int, total_questions: int) -> float:
    return (attempted_questions / total_questions) * 100 if total_questions else 0


def time_efficiency(total_time_spent: int, duration_minutes: int) -> float:
    """Minutes spent answering vs minutes allocated (lower is faster)."""
    return (total_time_spent / duration_minutes) * 100 if duration_minutes else 0


def attempt_metrics(attempt) -> dict:
    return {
        "is_completed": is_completed(attempt.status),
        "accuracy": accuracy(attempt.correct_answers, attempt.attempted_questions),
        "completion_rate": completion_rate(attempt.attempted_questions, attempt.total_questions),
        "time_efficiency": time_efficiency(attempt.total_time_spent, attempt.duration_minutes),
    }
