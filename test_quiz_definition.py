"""
Tests for quiz authoring: creation, the question bank, publishing and updates.
"""

from datetime import datetime, timedelta

import pytest

from conftest import (
    choice_question,
    quiz_payload,
    short_answer_question,
    true_false_question,
)
from quiz_engine.core.exceptions import (
    Forbidden,
    InvalidArgument,
    InvalidState,
    NotFound,
)
from quiz_engine.schemas.quiz import (
    QuestionCreate,
    QuizPublicResponse,
    QuizResponse,
    QuizUpdate,
)
from quiz_engine.services.quiz import QuizService
from quiz_engine.services.quiz_attempt import QuizAttemptService


# ==================== createQuiz ====================


def test_create_quiz_starts_unpublished_and_empty(db, instructor, course, module):
    quiz = QuizService(db).create_quiz(quiz_payload(course, module), instructor)

    assert quiz.id is not None
    assert quiz.is_published is False
    assert quiz.questions == []
    assert quiz.total_marks == 0
    assert quiz.created_by == instructor.id
    assert quiz.max_attempts == 2
    assert quiz.instructions == ["Answer every question"]


def test_admin_can_create_quiz_for_any_course(db, admin, course, module):
    quiz = QuizService(db).create_quiz(quiz_payload(course, module), admin)
    assert quiz.created_by == admin.id


def test_create_quiz_requires_course_instructor(db, other_instructor, course, module):
    with pytest.raises(Forbidden):
        QuizService(db).create_quiz(quiz_payload(course, module), other_instructor)


def test_create_quiz_unknown_course(db, instructor, course, module):
    payload = quiz_payload(course, module, course_id=9999)
    with pytest.raises(NotFound):
        QuizService(db).create_quiz(payload, instructor)


def test_create_quiz_module_must_belong_to_course(db, instructor, course, module):
    payload = quiz_payload(course, module, module_id=module.id + 100)
    with pytest.raises(NotFound, match="Module"):
        QuizService(db).create_quiz(payload, instructor)


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"description": ""},
        {"duration": 0},
        {"duration": -5},
        {
            "start_date": datetime(2026, 5, 2),
            "end_date": datetime(2026, 5, 1),
        },
    ],
)
def test_create_quiz_rejects_invalid_fields(db, instructor, course, module, overrides):
    with pytest.raises(InvalidArgument):
        QuizService(db).create_quiz(quiz_payload(course, module, **overrides), instructor)


# ==================== Question bank ====================


def test_add_question_recomputes_total_marks(make_quiz):
    quiz = make_quiz(
        questions=[
            choice_question(marks=2),
            true_false_question(marks=3),
            short_answer_question(marks=5),
        ],
        publish=False,
    )

    assert quiz.total_marks == 10
    assert [q["question_type"] for q in quiz.questions] == [
        "MULTIPLE_CHOICE",
        "TRUE_FALSE",
        "SHORT_ANSWER",
    ]
    ids = [q["id"] for q in quiz.questions]
    assert len(set(ids)) == 3


def test_add_question_only_by_creator(db, make_quiz, other_instructor):
    quiz = make_quiz(publish=False)
    with pytest.raises(Forbidden):
        QuizService(db).add_question(quiz.id, choice_question(), other_instructor)


def test_add_question_unknown_quiz(db, instructor):
    with pytest.raises(NotFound):
        QuizService(db).add_question(404, choice_question(), instructor)


@pytest.mark.parametrize(
    "question",
    [
        QuestionCreate(question_text="No options", question_type="SINGLE_CHOICE"),
        QuestionCreate(
            question_text="No correct option",
            question_type="MULTIPLE_CHOICE",
            options=[{"text": "a"}, {"text": "b"}],
        ),
        QuestionCreate(
            question_text="Two truths",
            question_type="TRUE_FALSE",
            options=[
                {"text": "True", "is_correct": True},
                {"text": "False", "is_correct": True},
            ],
        ),
        QuestionCreate(
            question_text="Blank answer",
            question_type="SHORT_ANSWER",
            correct_answer="   ",
        ),
        QuestionCreate(
            question_text="   ",
            question_type="SHORT_ANSWER",
            correct_answer="x",
        ),
        QuestionCreate(
            question_text="\t\n",
            question_type="SINGLE_CHOICE",
            options=[
                {"text": "A", "is_correct": True},
                {"text": "B", "is_correct": False},
            ],
        ),
        QuestionCreate(
            question_text="Blank option",
            question_type="MULTIPLE_CHOICE",
            options=[
                {"text": "A", "is_correct": True},
                {"text": "   ", "is_correct": False},
            ],
        ),
    ],
)
def test_add_question_rejects_malformed_questions(db, make_quiz, instructor, question):
    quiz = make_quiz(publish=False)
    with pytest.raises(InvalidArgument):
        QuizService(db).add_question(quiz.id, question, instructor)


def test_update_question_keeps_id(db, make_quiz, instructor):
    quiz = make_quiz(questions=[choice_question(marks=1)], publish=False)
    question_id = quiz.questions[0]["id"]

    quiz = QuizService(db).update_question(
        quiz.id, question_id, short_answer_question(marks=4), instructor
    )

    assert quiz.questions[0]["id"] == question_id
    assert quiz.questions[0]["question_type"] == "SHORT_ANSWER"
    assert quiz.total_marks == 4


def test_update_unknown_question(db, make_quiz, instructor):
    quiz = make_quiz(publish=False)
    with pytest.raises(NotFound):
        QuizService(db).update_question(quiz.id, "missing", choice_question(), instructor)


def test_remove_question_recomputes_total(db, make_quiz, instructor):
    quiz = make_quiz(questions=[choice_question(marks=2), true_false_question(marks=3)])

    quiz = QuizService(db).remove_question(quiz.id, quiz.questions[0]["id"], instructor)

    assert len(quiz.questions) == 1
    assert quiz.total_marks == 3


def test_published_quiz_keeps_last_question(db, make_quiz, instructor):
    quiz = make_quiz()
    with pytest.raises(InvalidState):
        QuizService(db).remove_question(quiz.id, quiz.questions[0]["id"], instructor)


def test_question_bank_frozen_once_attempted(db, make_quiz, instructor, student):
    quiz = make_quiz()
    QuizAttemptService(db).start_attempt(quiz.id, student.id)
    service = QuizService(db)

    with pytest.raises(InvalidState):
        service.add_question(quiz.id, choice_question(), instructor)
    with pytest.raises(InvalidState):
        service.update_question(
            quiz.id, quiz.questions[0]["id"], choice_question(), instructor
        )


# ==================== publishQuiz ====================


def test_publish_requires_questions(db, make_quiz, instructor):
    quiz = make_quiz(questions=[], publish=False)
    with pytest.raises(InvalidState):
        QuizService(db).publish_quiz(quiz.id, instructor)


def test_publish_is_idempotent(db, make_quiz, instructor):
    quiz = make_quiz()
    again = QuizService(db).publish_quiz(quiz.id, instructor)
    assert again.is_published is True


def test_publish_only_by_creator(db, make_quiz, other_instructor):
    quiz = make_quiz(publish=False)
    with pytest.raises(Forbidden):
        QuizService(db).publish_quiz(quiz.id, other_instructor)


# ==================== updateQuiz ====================


def test_update_quiz_fields_and_settings(db, make_quiz, instructor):
    quiz = make_quiz()
    updated = QuizService(db).update_quiz(
        quiz.id,
        QuizUpdate(
            title="Week 1 check (v2)",
            passing_percentage=70,
            settings={"show_answers": False, "max_attempts": 5},
        ),
        instructor,
    )

    assert updated.title == "Week 1 check (v2)"
    assert updated.passing_percentage == 70
    assert updated.show_answers is False
    assert updated.max_attempts == 5
    # untouched settings keep their values
    assert updated.show_results is True


def test_update_quiz_replaces_questions(db, make_quiz, instructor):
    quiz = make_quiz(questions=[choice_question(marks=1)])
    updated = QuizService(db).update_quiz(
        quiz.id,
        QuizUpdate(questions=[short_answer_question(marks=2), true_false_question(marks=2)]),
        instructor,
    )
    assert len(updated.questions) == 2
    assert updated.total_marks == 4


def test_update_quiz_locks_scoring_after_attempts(db, make_quiz, instructor, student):
    quiz = make_quiz()
    QuizAttemptService(db).start_attempt(quiz.id, student.id)
    service = QuizService(db)

    with pytest.raises(InvalidState):
        service.update_quiz(quiz.id, QuizUpdate(duration=60), instructor)
    with pytest.raises(InvalidState):
        service.update_quiz(
            quiz.id, QuizUpdate(questions=[choice_question()]), instructor
        )

    # Other fields stay editable
    updated = service.update_quiz(quiz.id, QuizUpdate(title="Renamed"), instructor)
    assert updated.title == "Renamed"
    assert updated.duration == 30


def test_update_quiz_validates_before_applying(db, make_quiz, instructor):
    quiz = make_quiz()
    with pytest.raises(InvalidArgument):
        QuizService(db).update_quiz(
            quiz.id, QuizUpdate(title="New title", duration=0), instructor
        )

    db.expire_all()
    assert QuizService(db).get_quiz(quiz.id).title == "Week 1 check"


def test_update_quiz_rejects_inverted_window(db, make_quiz, instructor):
    quiz = make_quiz()
    start = datetime(2026, 1, 10)
    with pytest.raises(InvalidArgument):
        QuizService(db).update_quiz(
            quiz.id,
            QuizUpdate(start_date=start, end_date=start - timedelta(days=1)),
            instructor,
        )


def test_update_quiz_only_by_creator(db, make_quiz, other_instructor):
    quiz = make_quiz()
    with pytest.raises(Forbidden):
        QuizService(db).update_quiz(quiz.id, QuizUpdate(title="x"), other_instructor)


# ==================== getQuiz ====================


def test_creator_sees_answer_key(db, make_quiz, instructor):
    quiz = make_quiz()
    view = QuizService(db).get_quiz_view(quiz.id, instructor)

    assert isinstance(view, QuizResponse)
    assert any(opt.is_correct for opt in view.questions[0].options)


def test_student_sees_sanitized_questions(db, make_quiz, student):
    quiz = make_quiz()
    view = QuizService(db).get_quiz_view(quiz.id, student)

    assert isinstance(view, QuizPublicResponse)
    dumped = view.model_dump()
    for question in dumped["questions"]:
        assert "correct_answer" not in question
        assert "explanation" not in question
        for option in question["options"]:
            assert set(option) == {"id", "text"}


def test_unpublished_quiz_hidden_from_students(db, make_quiz, student):
    quiz = make_quiz(publish=False)
    with pytest.raises(NotFound):
        QuizService(db).get_quiz_view(quiz.id, student)
