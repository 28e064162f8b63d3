import pytest

from grading.schemas import AnswerInput, ExamQuestionRef, QuestionKey
from grading.scorer import MarkingScheme, exact_text_evaluator, score_answers


REFS = [
    ExamQuestionRef(question_id=1, marks=2),
    ExamQuestionRef(question_id=2, marks=3, negative_marks=1),
    ExamQuestionRef(question_id=3, marks=5),
]

KEYS = {
    1: QuestionKey(question_id=1, subject="Physics", topic="Kinematics", difficulty="easy",
                   marks=2, correct_options=["a"]),
    2: QuestionKey(question_id=2, subject="Physics", topic="Optics", difficulty="medium",
                   marks=3, correct_options=["a", "c"]),
    3: QuestionKey(question_id=3, question_type="fill-in-blank", subject="Chemistry",
                   topic="Bonding", difficulty="hard", marks=5, correct_text="Covalent Bond"),
}


def test_mixed_attempt_scores_and_stats():
    answers = [
        AnswerInput(question_id=1, selected_options=["a"], time_spent=30),
        AnswerInput(question_id=2, selected_options=["a"], time_spent=60, flagged=True),
        AnswerInput(question_id=3, text_answer="  covalent   bond ", time_spent=90),
    ]
    sheet = score_answers(REFS, answers, KEYS, total_marks=10)

    assert [s.is_correct for s in sheet.answers] == [True, False, True]
    assert sheet.marks_obtained == 7
    assert sheet.percentage == pytest.approx(70)

    stats = sheet.stats
    assert stats.total_questions == 3
    assert stats.attempted_questions == 3
    assert stats.correct_answers == 2
    assert stats.incorrect_answers == 1
    assert stats.skipped_questions == 0
    assert stats.flagged_questions == 1
    assert stats.average_time_per_question == pytest.approx(60)
    assert stats.total_time_spent == 3


def test_choice_answers_need_the_exact_option_set():
    superset = [AnswerInput(question_id=2, selected_options=["a", "b", "c"])]
    exact = [AnswerInput(question_id=2, selected_options=["c", "a"])]

    assert score_answers(REFS, superset, KEYS, 10).answers[1].is_correct is False
    assert score_answers(REFS, exact, KEYS, 10).answers[1].marks_obtained == 3


def test_unanswered_and_blank_count_as_skipped():
    answers = [
        AnswerInput(question_id=1, selected_options=[]),
        AnswerInput(question_id=3, text_answer="   "),
    ]
    sheet = score_answers(REFS, answers, KEYS, 10)

    assert sheet.stats.attempted_questions == 0
    assert sheet.stats.skipped_questions == 3
    assert sheet.stats.average_time_per_question == 0
    assert sheet.answers[0].has_record is True
    assert sheet.answers[1].has_record is False
    assert sheet.marks_obtained == 0


def test_zero_total_marks_gives_zero_percentage():
    refs = [ExamQuestionRef(question_id=1, marks=0)]
    sheet = score_answers(refs, [AnswerInput(question_id=1, selected_options=["a"])], KEYS, total_marks=0)
    assert sheet.percentage == 0


def test_missing_catalog_question_is_incorrect_but_counted():
    answers = [AnswerInput(question_id=3, text_answer="Covalent Bond")]
    sheet = score_answers(REFS, answers, {1: KEYS[1], 2: KEYS[2]}, total_marks=10)

    slot = sheet.answers[2]
    assert slot.attempted is True
    assert slot.is_correct is False
    assert slot.marks_obtained == 0
    assert sheet.stats.total_questions == 3
    assert sheet.stats.incorrect_answers == 1


def test_text_question_without_stored_answer_is_never_correct():
    keys = dict(KEYS)
    keys[3] = KEYS[3].model_copy(update={"correct_text": None})
    sheet = score_answers(REFS, [AnswerInput(question_id=3, text_answer="anything")], keys, 10)
    assert sheet.answers[2].is_correct is False


def test_custom_text_evaluator():
    def keyword_evaluator(question, text):
        return "covalent" in text.lower()

    answers = [AnswerInput(question_id=3, text_answer="It is a covalent one")]
    assert score_answers(REFS, answers, KEYS, 10).answers[2].is_correct is False
    assert score_answers(REFS, answers, KEYS, 10, evaluator=keyword_evaluator).answers[2].is_correct is True


def test_exact_text_evaluator_normalises_case_and_whitespace():
    assert exact_text_evaluator(KEYS[3], "COVALENT\tbond")
    assert not exact_text_evaluator(KEYS[3], "covalentbond")


def test_negative_marking_deducts_and_floors_at_zero():
    wrong = [AnswerInput(question_id=2, selected_options=["b"])]
    scheme = MarkingScheme(negative_marking=True)

    sheet = score_answers(REFS, wrong, KEYS, 10, scheme=scheme)
    assert sheet.answers[1].marks_obtained == -1
    assert sheet.marks_obtained == 0

    mixed = wrong + [AnswerInput(question_id=1, selected_options=["a"])]
    assert score_answers(REFS, mixed, KEYS, 10, scheme=scheme).marks_obtained == 1
    assert score_answers(REFS, mixed, KEYS, 10).marks_obtained == 2


def test_total_minutes_round_half_up():
    answers = [AnswerInput(question_id=1, selected_options=["a"], time_spent=90)]
    assert score_answers(REFS, answers, KEYS, 10).stats.total_time_spent == 2
