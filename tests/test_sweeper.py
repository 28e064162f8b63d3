from conftest import at, make_exam
from database import crud
from database.models import AttemptStatus
from sessions import lifecycle, sweeper
from sessions.schemas import AnswerUpdate
from sessions.sweeper import sweep_expired_attempts


def test_sweep_closes_only_expired_attempts(db, student, other_student, exam, questions):
    short = make_exam(db, questions, title="Quiz", duration_minutes=15)
    expired = lifecycle.start_session(db, student.id, short.id, now=at(0))
    running = lifecycle.start_session(db, other_student.id, exam.id, now=at(0))

    closed = sweep_expired_attempts(db, now=at(20))

    assert closed == {short.id: [expired.attempt_id]}
    assert crud.get_attempt(db, expired.attempt_id).status == AttemptStatus.AUTO_SUBMITTED.value
    assert crud.get_attempt(db, running.attempt_id).status == AttemptStatus.IN_PROGRESS.value


def test_sweep_is_idempotent(db, student, exam):
    lifecycle.start_session(db, student.id, exam.id, now=at(0))

    assert len(sweep_expired_attempts(db, now=at(61))[exam.id]) == 1
    assert sweep_expired_attempts(db, now=at(62)) == {}


def test_sweep_then_rank(db, student, other_student, exam, questions):
    a = lifecycle.start_session(db, student.id, exam.id, now=at(0))
    b = lifecycle.start_session(db, other_student.id, exam.id, now=at(0))
    lifecycle.save_progress(db, a.attempt_id, student.id, [
        AnswerUpdate(question_id=questions[0].id, selected_options=["a"]),
    ], now=at(5))
    lifecycle.submit(db, b.attempt_id, other_student.id, now=at(6))

    closed = sweep_expired_attempts(db, now=at(70))
    for exam_id in closed:
        crud.update_exam_ranks(db, exam_id)

    first = crud.get_attempt(db, a.attempt_id)
    second = crud.get_attempt(db, b.attempt_id)
    assert (first.rank, first.percentile) == (1, 100)
    assert (second.rank, second.percentile) == (2, 0)

    stats = crud.exam_statistics(db, exam.id)
    assert stats["total_attempts"] == 2
    assert stats["highest_score"] == 20
    assert stats["lowest_score"] == 0
    assert stats["pass_rate"] == 0


def test_one_failing_attempt_does_not_block_the_batch(db, student, other_student, exam, monkeypatch):
    broken = lifecycle.start_session(db, student.id, exam.id, now=at(0))
    healthy = lifecycle.start_session(db, other_student.id, exam.id, now=at(0))

    real_close = sweeper.close_attempt

    def flaky_close(db, attempt, *args, **kwargs):
        if attempt.id == broken.attempt_id:
            raise RuntimeError("connection reset")
        return real_close(db, attempt, *args, **kwargs)

    monkeypatch.setattr(sweeper, "close_attempt", flaky_close)
    assert sweep_expired_attempts(db, now=at(61)) == {exam.id: [healthy.attempt_id]}
    assert crud.get_attempt(db, broken.attempt_id).status == AttemptStatus.IN_PROGRESS.value

    monkeypatch.setattr(sweeper, "close_attempt", real_close)
    assert sweep_expired_attempts(db, now=at(62)) == {exam.id: [broken.attempt_id]}
