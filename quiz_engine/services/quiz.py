# quiz_engine/services/quiz.py
import logging
import uuid
from typing import Optional, Union

from sqlalchemy.orm import Session

from quiz_engine.core.clock import as_naive_utc
from quiz_engine.core.decorator import db_exception
from quiz_engine.core.exceptions import (
    Forbidden,
    InvalidArgument,
    InvalidState,
    NotFound,
)
from quiz_engine.models.quiz import QuestionType, Quiz
from quiz_engine.models.quiz_attempt import QuizAttempt
from quiz_engine.models.user import User
from quiz_engine.schemas.quiz import (
    QuestionCreate,
    QuizBaseResponse,
    QuizCreate,
    QuizPublicResponse,
    QuizResponse,
    QuizUpdate,
)
from quiz_engine.services.course_registry import CourseRegistry
from quiz_engine.services.grading import sanitize_question

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def build_question(question_in: QuestionCreate, question_id: Optional[str] = None) -> dict:
    """
    Validate an authored question and turn it into its stored form.

    The prompt must not be blank. Choice questions need non-blank options and
    at least one correct option (exactly one for TRUE_FALSE); SHORT_ANSWER
    questions need a non-blank correct answer.
    """
    question_type = question_in.question_type

    if not question_in.question_text.strip():
        raise InvalidArgument("Question text must not be blank")

    if question_type in QuestionType.CHOICE:
        if not question_in.options:
            raise InvalidArgument("Options are required for this question type")
        if any(not opt.text.strip() for opt in question_in.options):
            raise InvalidArgument("Option text must not be blank")
        correct_count = sum(1 for opt in question_in.options if opt.is_correct)
        if correct_count == 0:
            raise InvalidArgument("At least one option must be marked correct")
        if question_type == QuestionType.TRUE_FALSE and correct_count != 1:
            raise InvalidArgument(
                "True/false questions must have exactly one correct option"
            )

    if question_type == QuestionType.SHORT_ANSWER:
        if not (question_in.correct_answer or "").strip():
            raise InvalidArgument(
                "Correct answer is required for short answer questions"
            )

    return {
        "id": question_id or _new_id(),
        "question_text": question_in.question_text.strip(),
        "question_type": question_type,
        "options": [
            {
                "id": _new_id(),
                "text": opt.text.strip(),
                "is_correct": opt.is_correct,
                "explanation": opt.explanation,
            }
            for opt in question_in.options
        ]
        if question_type in QuestionType.CHOICE
        else [],
        "correct_answer": question_in.correct_answer
        if question_type == QuestionType.SHORT_ANSWER
        else None,
        "marks": question_in.marks,
        "explanation": question_in.explanation,
        "difficulty_level": question_in.difficulty_level,
    }


class QuizService:
    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseRegistry(db)

    # ==================== Lookups & guards ====================

    def get_quiz(self, quiz_id: int) -> Quiz:
        quiz = self.db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    def has_attempts(self, quiz_id: int) -> bool:
        return (
            self.db.query(QuizAttempt.id).filter(QuizAttempt.quiz_id == quiz_id).first()
            is not None
        )

    @staticmethod
    def _ensure_creator(quiz: Quiz, actor: User, action: str = "modify") -> None:
        if quiz.created_by != actor.id:
            raise Forbidden(f"Unauthorized to {action} this quiz")

    def _ensure_no_attempts(self, quiz: Quiz) -> None:
        if self.has_attempts(quiz.id):
            raise InvalidState(
                "Cannot modify questions or duration after quiz has been attempted"
            )

    @staticmethod
    def _ensure_window(start_date, end_date) -> None:
        if start_date and end_date and start_date > end_date:
            raise InvalidArgument("start_date must be before end_date")

    # ==================== Quiz definition ====================

    @db_exception
    def create_quiz(self, quiz_in: QuizCreate, actor: User) -> Quiz:
        """Create an unpublished quiz with an empty question bank"""
        if not quiz_in.title.strip() or not quiz_in.description.strip():
            raise InvalidArgument("All required fields must be provided")
        if quiz_in.duration <= 0:
            raise InvalidArgument("Duration must be a positive number of minutes")

        start_date = as_naive_utc(quiz_in.start_date)
        end_date = as_naive_utc(quiz_in.end_date)
        self._ensure_window(start_date, end_date)

        course = self.courses.get_course(quiz_in.course_id)
        if not course:
            raise NotFound("Course not found")

        if course.instructor_id != actor.id and not actor.is_admin:
            raise Forbidden("Unauthorized to create quiz for this course")

        if not self.courses.has_module(quiz_in.course_id, quiz_in.module_id):
            raise NotFound("Module not found in this course")

        quiz = Quiz(
            title=quiz_in.title.strip(),
            course_id=quiz_in.course_id,
            module_id=quiz_in.module_id,
            description=quiz_in.description.strip(),
            instructions=list(quiz_in.instructions),
            duration=quiz_in.duration,
            passing_percentage=quiz_in.passing_percentage,
            start_date=start_date,
            end_date=end_date,
            questions=[],
            total_marks=0,
            is_published=False,
            created_by=actor.id,
            **quiz_in.settings.model_dump(),
        )

        self.db.add(quiz)
        self.db.commit()
        self.db.refresh(quiz)

        logger.info(f"Quiz {quiz.id} created by user {actor.id} for course {course.id}")
        return quiz

    @db_exception
    def add_question(self, quiz_id: int, question_in: QuestionCreate, actor: User) -> Quiz:
        """Append a question and recompute the quiz's total marks"""
        quiz = self.get_quiz(quiz_id)
        self._ensure_creator(quiz, actor)
        question = build_question(question_in)
        self._ensure_no_attempts(quiz)

        quiz.questions = [*(quiz.questions or []), question]
        quiz.calculate_total_marks()

        self.db.commit()
        self.db.refresh(quiz)

        logger.info(
            f"Question {question['id']} added to quiz {quiz.id} (total marks {quiz.total_marks})"
        )
        return quiz

    @db_exception
    def update_question(
        self,
        quiz_id: int,
        question_id: str,
        question_in: QuestionCreate,
        actor: User,
    ) -> Quiz:
        """Replace a question's content, keeping its id"""
        quiz = self.get_quiz(quiz_id)
        self._ensure_creator(quiz, actor)
        if quiz.get_question(question_id) is None:
            raise NotFound("Question not found")
        question = build_question(question_in, question_id=question_id)
        self._ensure_no_attempts(quiz)

        quiz.questions = [
            question if q["id"] == question_id else q for q in quiz.questions
        ]
        quiz.calculate_total_marks()

        self.db.commit()
        self.db.refresh(quiz)
        return quiz

    @db_exception
    def remove_question(self, quiz_id: int, question_id: str, actor: User) -> Quiz:
        quiz = self.get_quiz(quiz_id)
        self._ensure_creator(quiz, actor)
        if quiz.get_question(question_id) is None:
            raise NotFound("Question not found")
        self._ensure_no_attempts(quiz)

        remaining = [q for q in quiz.questions if q["id"] != question_id]
        if quiz.is_published and not remaining:
            raise InvalidState("A published quiz must keep at least one question")

        quiz.questions = remaining
        quiz.calculate_total_marks()

        self.db.commit()
        self.db.refresh(quiz)
        return quiz

    @db_exception
    def publish_quiz(self, quiz_id: int, actor: User) -> Quiz:
        quiz = self.get_quiz(quiz_id)
        self._ensure_creator(quiz, actor, action="publish")

        if not quiz.questions:
            raise InvalidState("Cannot publish quiz without questions")

        if not quiz.is_published:
            quiz.calculate_total_marks()
            quiz.is_published = True
            self.db.commit()
            self.db.refresh(quiz)
            logger.info(f"Quiz {quiz.id} published")

        return quiz

    @db_exception
    def update_quiz(self, quiz_id: int, quiz_in: QuizUpdate, actor: User) -> Quiz:
        """
        Update quiz fields. Once any attempt exists the question set and the
        duration are frozen; everything else may still change.
        """
        quiz = self.get_quiz(quiz_id)
        self._ensure_creator(quiz, actor)

        data = quiz_in.model_dump(exclude_unset=True)
        new_duration = data.get("duration")

        touches_scoring = quiz_in.questions is not None or (
            new_duration is not None and new_duration != quiz.duration
        )
        if touches_scoring:
            self._ensure_no_attempts(quiz)

        # Validate everything before touching the quiz
        for field in ("title", "description"):
            if data.get(field) is not None and not data[field].strip():
                raise InvalidArgument(f"{field} cannot be empty")
        if new_duration is not None and new_duration <= 0:
            raise InvalidArgument("Duration must be a positive number of minutes")

        start_date = (
            as_naive_utc(data["start_date"]) if "start_date" in data else quiz.start_date
        )
        end_date = as_naive_utc(data["end_date"]) if "end_date" in data else quiz.end_date
        self._ensure_window(start_date, end_date)

        questions = None
        if quiz_in.questions is not None:
            questions = [build_question(q) for q in quiz_in.questions]
            if quiz.is_published and not questions:
                raise InvalidState("A published quiz must keep at least one question")

        # Apply
        for field in ("title", "description"):
            if data.get(field) is not None:
                setattr(quiz, field, data[field].strip())
        if new_duration is not None:
            quiz.duration = new_duration
        if data.get("instructions") is not None:
            quiz.instructions = list(data["instructions"])
        if data.get("passing_percentage") is not None:
            quiz.passing_percentage = data["passing_percentage"]
        for field, value in (data.get("settings") or {}).items():
            if value is not None:
                setattr(quiz, field, value)
        quiz.start_date = start_date
        quiz.end_date = end_date
        if questions is not None:
            quiz.questions = questions
            quiz.calculate_total_marks()

        self.db.commit()
        self.db.refresh(quiz)

        logger.info(f"Quiz {quiz.id} updated by user {actor.id}")
        return quiz

    # ==================== Read side ====================

    def get_quiz_view(
        self, quiz_id: int, actor: User
    ) -> Union[QuizResponse, QuizPublicResponse]:
        """
        The author (or an admin) sees the answer key. Everyone else only sees a
        published quiz, with sanitized questions.
        """
        quiz = self.get_quiz(quiz_id)

        if quiz.created_by == actor.id or actor.is_admin:
            return QuizResponse.model_validate(quiz)

        if not quiz.is_published:
            raise NotFound("Quiz not found")

        view = QuizBaseResponse.model_validate(quiz).model_dump()
        view["questions"] = [sanitize_question(q) for q in quiz.questions]
        return QuizPublicResponse(**view)
