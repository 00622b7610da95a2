"""
Shared fixtures for the quiz engine test suite.

Everything runs against a single in-memory SQLite database; tables are
recreated for every test.
"""

import os

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import random  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from quiz_engine.core.database import Base, SessionLocal, engine  # noqa: E402
from quiz_engine.core.security import jwt_manager  # noqa: E402
from quiz_engine.models import Course, CourseModule, User  # noqa: E402
from quiz_engine.schemas.quiz import QuestionCreate, QuizCreate  # noqa: E402
from quiz_engine.services.quiz import QuizService  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _user(db, name, role):
    user = User(
        full_name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def instructor(db):
    return _user(db, "Ada Instructor", "instructor")


@pytest.fixture
def other_instructor(db):
    return _user(db, "Grace Instructor", "instructor")


@pytest.fixture
def student(db):
    return _user(db, "Sam Student", "student")


@pytest.fixture
def other_student(db):
    return _user(db, "Kim Student", "student")


@pytest.fixture
def admin(db):
    return _user(db, "Root Admin", "admin")


@pytest.fixture
def course(db, instructor):
    course = Course(name="Databases 101", instructor_id=instructor.id)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def module(db, course):
    module = CourseModule(course_id=course.id, title="Relational algebra", position=1)
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


@pytest.fixture
def rng():
    return random.Random(1234)


# ==================== Builders ====================


def choice_question(text="Pick the primes", marks=1, correct=(0,), n=4, kind="MULTIPLE_CHOICE"):
    return QuestionCreate(
        question_text=text,
        question_type=kind,
        options=[
            {"text": f"Option {i}", "is_correct": i in correct, "explanation": f"Because {i}"}
            for i in range(n)
        ],
        marks=marks,
        explanation="Worked solution",
    )


def true_false_question(text="SQL is declarative", answer=True, marks=1):
    return QuestionCreate(
        question_text=text,
        question_type="TRUE_FALSE",
        options=[
            {"text": "True", "is_correct": answer},
            {"text": "False", "is_correct": not answer},
        ],
        marks=marks,
    )


def short_answer_question(text="Name the join of all pairs", answer="Cross Join", marks=1):
    return QuestionCreate(
        question_text=text,
        question_type="SHORT_ANSWER",
        correct_answer=answer,
        marks=marks,
    )


def quiz_payload(course, module, **overrides):
    data = {
        "title": "Week 1 check",
        "course_id": course.id,
        "module_id": module.id,
        "description": "Basics of relational algebra",
        "instructions": ["Answer every question"],
        "duration": 30,
        "passing_percentage": 50,
        "settings": {
            "shuffle_questions": False,
            "shuffle_options": False,
            "show_results": True,
            "show_answers": True,
            "max_attempts": 2,
            "is_time_limited": True,
        },
    }
    settings = overrides.pop("settings", {})
    data["settings"].update(settings)
    data.update(overrides)
    return QuizCreate(**data)


@pytest.fixture
def make_quiz(db, instructor, course, module):
    """Create (and by default publish) a quiz owned by `instructor`."""

    def factory(questions=None, publish=True, **overrides):
        service = QuizService(db)
        quiz = service.create_quiz(quiz_payload(course, module, **overrides), instructor)
        for question in questions if questions is not None else [choice_question()]:
            quiz = service.add_question(quiz.id, question, instructor)
        if publish:
            quiz = service.publish_quiz(quiz.id, instructor)
        return quiz

    return factory


def option_ids(quiz, index, correct=None):
    """Ids of the options of question `index`, optionally filtered by correctness."""
    return [
        opt["id"]
        for opt in quiz.questions[index]["options"]
        if correct is None or opt["is_correct"] == correct
    ]


# ==================== HTTP ====================


@pytest.fixture
def client(db):
    from main import app

    return TestClient(app)


@pytest.fixture
def auth_headers():
    def headers(user):
        return {"Authorization": f"Bearer {jwt_manager.create_access_token(user)}"}

    return headers
