"""
Student authentication dependency.
Resolves the bearer token on every attempt/result request to an active student.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from auth.security import decode_token
from database.database import get_db
from database.models import Student

router = APIRouter(prefix="/auth/student", tags=["auth-student"])
security_scheme = HTTPBearer()


# ─── Dependencies ──────────────────────────────────────────────────────────────

def get_current_student(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> Student:
    payload = decode_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    if payload.get("role") != "student":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student access required")

    try:
        student_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    student = db.query(Student).filter(Student.id == student_id).first()
    if not student or not student.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Student not found or inactive")
    return student


def _student_dict(student: Student) -> dict:
    return {
        "id": student.id,
        "email": student.email,
        "full_name": student.full_name,
        "is_active": student.is_active,
    }


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.get("/me")
def student_me(student: Student = Depends(get_current_student)):
    """Get current student profile."""
    return _student_dict(student)
