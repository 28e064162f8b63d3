from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import bearer, make_exam
from main import app

client = TestClient(app)


@pytest.fixture
def live_exam(db, questions):
    now = datetime.now(timezone.utc)
    return make_exam(db, questions, start_time=now - timedelta(hours=1), end_time=now + timedelta(hours=2))


def _start(student, exam):
    return client.post("/attempts/start", json={"exam_id": exam.id, "screen_resolution": "1920x1080"},
                       headers=bearer(student))


def test_health():
    assert client.get("/health").json()["status"] == "healthy"


def test_requires_token(db, live_exam):
    response = client.post("/attempts/start", json={"exam_id": live_exam.id})
    assert response.status_code in (401, 403)


def test_rejects_non_student_token(db, student, live_exam):
    from auth.security import create_access_token
    token = create_access_token({"sub": str(student.id), "role": "teacher"})
    response = client.post("/attempts/start", json={"exam_id": live_exam.id},
                           headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_full_attempt_flow(db, student, live_exam, questions):
    q1, q2, q3 = questions
    headers = bearer(student)

    started = _start(student, live_exam)
    assert started.status_code == 200
    body = started.json()
    attempt_id = body["attempt_id"]
    assert body["total_questions"] == 3
    assert body["total_marks"] == 10

    saved = client.put(f"/attempts/{attempt_id}/progress", headers=headers, json={
        "answers": [
            {"question_id": q1.id, "selected_options": ["a"], "time_spent": 20},
            {"question_id": q2.id, "selected_options": ["c", "a"], "time_spent": 25},
        ],
        "activities": [{"activity_type": "window-blur"}],
    })
    assert saved.status_code == 200
    assert saved.json()["saved"] == 2

    violation = client.post(f"/attempts/{attempt_id}/violations", headers=headers,
                            json={"violation_type": "tab-switch", "severity": "low"})
    assert violation.json()["violation_count"] == 1

    submitted = client.post(f"/attempts/{attempt_id}/submit", headers=headers, json={
        "answers": [{"question_id": q3.id, "text_answer": "ionic bond", "time_spent": 15}],
    })
    assert submitted.status_code == 200
    result = submitted.json()
    assert result["status"] == "submitted"
    assert result["marks_obtained"] == 5
    assert result["grade"] == "D"
    assert result["passed"] is True

    record = client.get(f"/attempts/{attempt_id}", headers=headers).json()
    assert record["scoring"]["percentage"] == 50
    assert record["stats"]["correct_answers"] == 2
    assert record["metadata"]["screen_resolution"] == "1920x1080"
    assert [a["type"] for a in record["session"]["activities"]] == ["start", "window-blur", "violation", "submit"]
    assert record["metrics"]["accuracy"] == pytest.approx(200 / 3)

    again = client.post(f"/attempts/{attempt_id}/submit", headers=headers)
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "AlreadySubmitted"


def test_second_start_conflicts(db, student, live_exam):
    assert _start(student, live_exam).status_code == 200
    response = _start(student, live_exam)
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "AlreadyAttempted"


def test_not_eligible(db, student, other_student, live_exam, restrict_to):
    restrict_to(live_exam, other_student)
    response = _start(student, live_exam)
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "NotEligible"


def test_exam_not_started(db, student, questions):
    later = datetime.now(timezone.utc) + timedelta(days=1)
    exam = make_exam(db, questions, start_time=later, end_time=later + timedelta(hours=2))
    response = _start(student, exam)
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "ExamNotActive"


def test_unknown_question_in_progress_save(db, student, live_exam):
    attempt_id = _start(student, live_exam).json()["attempt_id"]
    response = client.put(f"/attempts/{attempt_id}/progress", headers=bearer(student),
                          json={"answers": [{"question_id": 424242, "selected_options": ["a"]}]})
    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "UnknownQuestion"


def test_foreign_attempt(db, student, other_student, live_exam):
    attempt_id = _start(student, live_exam).json()["attempt_id"]
    response = client.get(f"/attempts/{attempt_id}", headers=bearer(other_student))
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "InvalidSession"


def test_missing_attempt(db, student):
    response = client.get("/attempts/999", headers=bearer(student))
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "AttemptNotFound"


def test_results_views(db, student, other_student, live_exam, questions):
    for s, option in ((student, "a"), (other_student, "b")):
        attempt_id = _start(s, live_exam).json()["attempt_id"]
        client.post(f"/attempts/{attempt_id}/submit", headers=bearer(s), json={
            "answers": [{"question_id": questions[0].id, "selected_options": [option]}],
        })

    mine = client.get("/results/me", headers=bearer(student)).json()
    assert len(mine) == 1
    assert mine[0]["exam_title"] == live_exam.title
    assert mine[0]["marks_obtained"] == 2

    stats = client.get(f"/results/exams/{live_exam.id}/statistics", headers=bearer(student)).json()
    assert stats["total_attempts"] == 2
    assert stats["highest_score"] == 20
    assert stats["average_score"] == 10

    board = client.get(f"/results/exams/{live_exam.id}/leaderboard", headers=bearer(student)).json()
    assert [e["student_name"] for e in board["entries"]] == ["Asha Rao", "Liam Ortiz"]
    assert board["entries"][0]["position"] == 1

    assert client.get("/results/exams/777/statistics", headers=bearer(student)).status_code == 404
