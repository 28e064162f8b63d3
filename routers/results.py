"""
Results router.
Read-only reporting over closed attempts: a student's own history, per-exam
statistics and the leaderboard.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import crud
from database.database import get_db
from database.models import Exam, Student
from routers.auth_student import get_current_student
from sessions.records import attempt_summary

router = APIRouter(prefix="/results", tags=["results"])


def _require_exam(db: Session, exam_id: int) -> Exam:
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise HTTPException(status_code=404, detail={"error": "ExamNotFound", "message": "Exam not found"})
    return exam


@router.get("/me")
def my_results(
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """All attempts of the current student, newest first."""
    return [attempt_summary(a) for a in crud.student_history(db, student.id)]


@router.get("/exams/{exam_id}/statistics")
def exam_statistics(
    exam_id: int,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    _require_exam(db, exam_id)
    return crud.exam_statistics(db, exam_id)


@router.get("/exams/{exam_id}/leaderboard")
def exam_leaderboard(
    exam_id: int,
    limit: int = Query(10, ge=1, le=100),
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Top closed attempts by percentage; ties go to the earlier submission."""
    exam = _require_exam(db, exam_id)
    rows = []
    for position, attempt in enumerate(crud.leaderboard(db, exam_id, limit), start=1):
        rows.append({
            "position": position,
            "student_name": attempt.student.full_name if attempt.student else None,
            **attempt_summary(attempt),
        })
    return {"exam_id": exam.id, "title": exam.title, "entries": rows}
