"""
Pydantic types crossing the session lifecycle boundary (router ↔ service).
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


ActivityType = Literal["start", "pause", "resume", "submit", "warning", "violation", "tab-switch", "window-blur"]
ViolationType = Literal["tab-switch", "window-blur", "copy-paste", "right-click", "full-screen-exit", "suspicious-activity"]
Severity = Literal["low", "medium", "high"]


class AnswerUpdate(BaseModel):
    """Client-side answer state for one question. Correctness and marks are never accepted from the client."""
    question_id: int
    selected_options: List[str] = Field(default_factory=list)
    text_answer: Optional[str] = None
    time_spent: int = Field(0, ge=0)
    flagged: bool = False

    @field_validator("selected_options")
    @classmethod
    def _as_set(cls, value: List[str]) -> List[str]:
        return sorted({str(v) for v in value})


class ActivityInput(BaseModel):
    activity_type: ActivityType
    details: Optional[str] = None


class ViolationInput(BaseModel):
    violation_type: ViolationType
    severity: Severity = "medium"
    description: Optional[str] = None


class ClientInfo(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    browser_info: Optional[str] = None
    screen_resolution: Optional[str] = None
    device_info: Optional[str] = None


class StartResult(BaseModel):
    attempt_id: int
    attempt_number: int
    start_time: datetime
    duration: int  # minutes
    deadline: datetime
    total_questions: int
    total_marks: float


class SubmitResult(BaseModel):
    attempt_id: int
    status: str
    marks_obtained: float
    total_marks: float
    percentage: float
    grade: str
    passed: bool
    submitted_at: datetime
