"""
Attempt router.
Student-facing lifecycle endpoints: start an attempt, save progress, submit,
report proctoring violations, and read the full attempt record.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import Student
from routers.auth_student import get_current_student
from sessions import lifecycle, violations
from sessions.errors import SessionError
from sessions.records import attempt_record
from sessions.schemas import ActivityInput, AnswerUpdate, ClientInfo, ViolationInput

router = APIRouter(prefix="/attempts", tags=["attempts"])


# ─── Schemas ───────────────────────────────────────────────────────────────────

class StartRequest(BaseModel):
    exam_id: int
    browser_info: Optional[str] = None
    screen_resolution: Optional[str] = None
    device_info: Optional[str] = None


class ProgressRequest(BaseModel):
    answers: List[AnswerUpdate] = Field(default_factory=list)
    activities: List[ActivityInput] = Field(default_factory=list)


class SubmitRequest(BaseModel):
    answers: Optional[List[AnswerUpdate]] = None


# ─── Helpers ───────────────────────────────────────────────────────────────────

def _http_error(err: SessionError) -> HTTPException:
    return HTTPException(status_code=err.status_code, detail=err.to_detail())


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/start")
def start_attempt(
    body: StartRequest,
    request: Request,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Open a new attempt and return its id, deadline and totals."""
    client = ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        browser_info=body.browser_info,
        screen_resolution=body.screen_resolution,
        device_info=body.device_info,
    )
    try:
        return lifecycle.start_session(db, student.id, body.exam_id, client=client)
    except SessionError as e:
        raise _http_error(e)


@router.put("/{attempt_id}/progress")
def save_progress(
    attempt_id: int,
    body: ProgressRequest,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Auto-save answers and client activity events."""
    try:
        saved = lifecycle.save_progress(db, attempt_id, student.id, body.answers, body.activities)
    except SessionError as e:
        raise _http_error(e)
    return {"attempt_id": attempt_id, "saved": saved}


@router.post("/{attempt_id}/submit")
def submit_attempt(
    attempt_id: int,
    body: Optional[SubmitRequest] = None,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Close the attempt, merging any final answers, and return the score."""
    answers = body.answers if body else None
    try:
        return lifecycle.submit(db, attempt_id, student.id, answers=answers)
    except SessionError as e:
        raise _http_error(e)


@router.post("/{attempt_id}/violations")
def report_violation(
    attempt_id: int,
    body: ViolationInput,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    try:
        count = violations.record_violation(db, attempt_id, student.id, body)
    except SessionError as e:
        raise _http_error(e)
    return {"attempt_id": attempt_id, "violation_count": count}


@router.get("/{attempt_id}")
def get_attempt(
    attempt_id: int,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Full attempt record. An expired open attempt is closed before it is returned."""
    try:
        attempt = lifecycle.get_result(db, attempt_id, student.id)
    except SessionError as e:
        raise _http_error(e)
    return attempt_record(attempt)
