"""
Serialisation of stored attempts for the read-only result views.
"""

from grading.metrics import attempt_metrics
from sessions.catalog import as_utc
from sessions.violations import violation_summary


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


def attempt_summary(attempt) -> dict:
    """Compact row for lists (history, leaderboard)."""
    return {
        "attempt_id": attempt.id,
        "student_id": attempt.student_id,
        "exam_id": attempt.exam_id,
        "exam_title": attempt.exam.title if attempt.exam else None,
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "marks_obtained": attempt.marks_obtained,
        "total_marks": attempt.total_marks,
        "percentage": attempt.percentage,
        "grade": attempt.grade,
        "passed": attempt.passed,
        "rank": attempt.rank,
        "percentile": attempt.percentile,
        "started_at": _iso(attempt.start_time),
        "submitted_at": _iso(attempt.submitted_at),
    }


def attempt_record(attempt) -> dict:
    """Full attempt record including answers, session logs and analytics."""
    return {
        "attempt_id": attempt.id,
        "student_id": attempt.student_id,
        "exam_id": attempt.exam_id,
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "answers": [
            {
                "question_id": a.question_id,
                "selected_options": a.selected_options or [],
                "text_answer": a.text_answer,
                "is_correct": a.is_correct,
                "marks_obtained": a.marks_obtained,
                "time_spent": a.time_spent,
                "flagged": a.flagged,
            }
            for a in attempt.answers
        ],
        "session": {
            "start_time": _iso(attempt.start_time),
            "end_time": _iso(attempt.end_time),
            "ip_address": attempt.ip_address,
            "user_agent": attempt.user_agent,
            "activities": [
                {"type": act.activity_type, "timestamp": _iso(act.timestamp), "details": act.details}
                for act in attempt.activities
            ],
            "violations": [
                {
                    "type": v.violation_type,
                    "timestamp": _iso(v.timestamp),
                    "severity": v.severity,
                    "description": v.description,
                }
                for v in attempt.violations
            ],
        },
        "scoring": {
            "total_marks": attempt.total_marks,
            "marks_obtained": attempt.marks_obtained,
            "percentage": attempt.percentage,
            "grade": attempt.grade,
            "passed": attempt.passed,
            "rank": attempt.rank,
            "percentile": attempt.percentile,
        },
        "stats": {
            "total_questions": attempt.total_questions,
            "attempted_questions": attempt.attempted_questions,
            "correct_answers": attempt.correct_answers,
            "incorrect_answers": attempt.incorrect_answers,
            "skipped_questions": attempt.skipped_questions,
            "flagged_questions": attempt.flagged_questions,
            "average_time_per_question": attempt.average_time_per_question,
            "total_time_spent": attempt.total_time_spent,
        },
        "analytics": attempt.analytics,
        "metadata": {
            "is_proctored": attempt.is_proctored,
            "browser_info": attempt.browser_info,
            "screen_resolution": attempt.screen_resolution,
            "device_info": attempt.device_info,
            **violation_summary(attempt),
        },
        "metrics": attempt_metrics(attempt),
        "submitted_at": _iso(attempt.submitted_at),
    }
