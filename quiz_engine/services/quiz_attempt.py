# quiz_engine/services/quiz_attempt.py
import logging
import math
import random
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from quiz_engine.core.clock import as_naive_utc, utcnow
from quiz_engine.core.decorator import db_exception
from quiz_engine.core.exceptions import (
    AlreadySubmitted,
    AttemptLimitExceeded,
    Forbidden,
    InvalidState,
    NotFound,
    NotPublished,
    OutOfWindow,
    TimeExceeded,
)
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_attempt import AttemptStatus, QuizAttempt
from quiz_engine.models.user import User
from quiz_engine.schemas.quiz import (
    AttemptResponse,
    DetailedResult,
    StartAttemptResponse,
    SubmitAttemptResponse,
)
from quiz_engine.services.grading import (
    compute_percentage,
    correct_answer_for,
    empty_response,
    grade_responses,
    merge_responses,
    present_questions,
    sanitize_question,
)

logger = logging.getLogger(__name__)


class QuizAttemptService:
    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    # ==================== Lookups ====================

    def _get_quiz(self, quiz_id: int) -> Quiz:
        quiz = self.db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    def _get_owned_attempt(
        self, quiz_id: int, attempt_id: int, student_id: int
    ) -> Tuple[Quiz, QuizAttempt]:
        quiz = self._get_quiz(quiz_id)

        attempt = (
            self.db.query(QuizAttempt)
            .filter(
                and_(
                    QuizAttempt.id == attempt_id,
                    QuizAttempt.quiz_id == quiz_id,
                )
            )
            .first()
        )
        if not attempt:
            raise NotFound("Attempt not found")

        if attempt.student_id != student_id:
            raise Forbidden("Unauthorized to access this attempt")

        return quiz, attempt

    def count_attempts(self, quiz_id: int, student_id: int) -> int:
        return (
            self.db.query(QuizAttempt)
            .filter(
                and_(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.student_id == student_id,
                )
            )
            .count()
        )

    def _compare_and_set(self, attempt_id: int, **values) -> bool:
        """
        Apply `values` only while the attempt is still IN_PROGRESS.

        Returns False when another writer already moved the attempt to a
        terminal state.
        """
        result = self.db.execute(
            update(QuizAttempt)
            .where(
                and_(
                    QuizAttempt.id == attempt_id,
                    QuizAttempt.status == AttemptStatus.IN_PROGRESS,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ==================== Start / resume ====================

    @db_exception
    def start_attempt(
        self,
        quiz_id: int,
        student_id: int,
        now: Optional[datetime] = None,
    ) -> StartAttemptResponse:
        """Create a new IN_PROGRESS attempt and return its sanitized questions"""
        now = as_naive_utc(now) if now else utcnow()
        quiz = self._get_quiz(quiz_id)

        if not quiz.is_published:
            raise NotPublished("Quiz is not published")

        if quiz.start_date and now < quiz.start_date:
            raise OutOfWindow("Quiz has not started yet")

        if quiz.end_date and now > quiz.end_date:
            raise OutOfWindow("Quiz has ended")

        # Count-then-insert: unlike the status update on submit this check is not
        # atomic, so two concurrent starts by one student can both pass it.
        attempts_used = self.count_attempts(quiz_id, student_id)
        if attempts_used >= quiz.max_attempts:
            raise AttemptLimitExceeded(
                f"Maximum attempts ({quiz.max_attempts}) reached for this quiz"
            )

        presented = present_questions(
            quiz.questions,
            shuffle_questions=quiz.shuffle_questions,
            shuffle_options=quiz.shuffle_options,
            rng=self.rng,
        )

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=student_id,
            responses=[
                empty_response(question["id"], option_order)
                for question, option_order in presented
            ],
            status=AttemptStatus.IN_PROGRESS,
            started_at=now,
        )

        self.db.add(attempt)
        self.db.commit()
        self.db.refresh(attempt)

        attempts_used += 1
        logger.info(
            f"Attempt {attempt.id} started on quiz {quiz.id} by student {student_id} "
            f"({attempts_used}/{quiz.max_attempts})"
        )

        return StartAttemptResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            status=attempt.status,
            questions=[
                sanitize_question(question, option_order)
                for question, option_order in presented
            ],
            duration=quiz.duration,
            is_time_limited=quiz.is_time_limited,
            started_at=attempt.started_at,
            attempts_used=attempts_used,
            attempts_remaining=quiz.max_attempts - attempts_used,
            message="Quiz attempt started successfully",
        )

    def resume_attempt(
        self, quiz_id: int, attempt_id: int, student_id: int
    ) -> StartAttemptResponse:
        """Rebuild the sanitized view of an attempt that is still in progress"""
        quiz, attempt = self._get_owned_attempt(quiz_id, attempt_id, student_id)

        if attempt.is_terminal:
            raise AlreadySubmitted("This attempt has already been submitted")

        questions = []
        for response in attempt.responses:
            question = quiz.get_question(response["question_id"])
            if question is not None:
                questions.append(
                    sanitize_question(question, response.get("option_order"))
                )

        attempts_used = self.count_attempts(quiz_id, student_id)
        return StartAttemptResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            status=attempt.status,
            questions=questions,
            duration=quiz.duration,
            is_time_limited=quiz.is_time_limited,
            started_at=attempt.started_at,
            attempts_used=attempts_used,
            attempts_remaining=max(quiz.max_attempts - attempts_used, 0),
            message="Resuming incomplete attempt",
        )

    # ==================== Responses & submission ====================

    @db_exception
    def record_responses(
        self,
        quiz_id: int,
        attempt_id: int,
        student_id: int,
        responses: Iterable,
    ) -> QuizAttempt:
        """Stage answers on an IN_PROGRESS attempt without grading them"""
        _, attempt = self._get_owned_attempt(quiz_id, attempt_id, student_id)

        if attempt.is_terminal:
            raise AlreadySubmitted("This attempt has already been submitted")

        merged = merge_responses(attempt.responses, responses)

        if not self._compare_and_set(attempt.id, responses=merged):
            self.db.rollback()
            raise AlreadySubmitted("This attempt has already been submitted")

        self.db.commit()
        self.db.refresh(attempt)
        return attempt

    @db_exception
    def submit_attempt(
        self,
        quiz_id: int,
        attempt_id: int,
        student_id: int,
        responses: Iterable = (),
        now: Optional[datetime] = None,
    ) -> SubmitAttemptResponse:
        """
        Merge the final answers, grade the attempt and close it.

        A time-limited attempt submitted after its duration is moved to EXPIRED
        (committed) and TimeExceeded is raised; nothing is graded.
        """
        now = as_naive_utc(now) if now else utcnow()
        quiz, attempt = self._get_owned_attempt(quiz_id, attempt_id, student_id)

        if attempt.is_terminal:
            raise AlreadySubmitted("This attempt has already been submitted")

        elapsed_minutes = (now - attempt.started_at).total_seconds() / 60
        if quiz.is_time_limited and elapsed_minutes > quiz.duration:
            if not self._compare_and_set(attempt.id, status=AttemptStatus.EXPIRED):
                self.db.rollback()
                raise AlreadySubmitted("This attempt has already been submitted")
            self.db.commit()
            logger.info(
                f"Attempt {attempt.id} on quiz {quiz.id} expired "
                f"({elapsed_minutes:.2f} > {quiz.duration} minutes)"
            )
            raise TimeExceeded("Quiz time limit exceeded")

        if not quiz.total_marks:
            raise InvalidState("Quiz has no marks to score against")

        merged = merge_responses(attempt.responses, responses)
        questions_by_id = {question["id"]: question for question in quiz.questions}
        graded, marks_obtained = grade_responses(questions_by_id, merged)
        percentage = compute_percentage(marks_obtained, quiz.total_marks)

        won = self._compare_and_set(
            attempt.id,
            responses=graded,
            total_marks=quiz.total_marks,
            marks_obtained=marks_obtained,
            percentage=percentage,
            status=AttemptStatus.COMPLETED,
            submitted_at=now,
        )
        if not won:
            self.db.rollback()
            logger.warning(f"Concurrent submission lost the race on attempt {attempt.id}")
            raise AlreadySubmitted("This attempt has already been submitted")

        self.db.commit()
        self.db.refresh(attempt)

        logger.info(
            f"Attempt {attempt.id} on quiz {quiz.id} completed: "
            f"{marks_obtained}/{quiz.total_marks} ({percentage}%)"
        )

        return self._build_result(quiz, attempt, graded, elapsed_minutes)

    @staticmethod
    def _build_result(
        quiz: Quiz,
        attempt: QuizAttempt,
        graded: List[dict],
        elapsed_minutes: float,
    ) -> SubmitAttemptResponse:
        detailed_results = None
        if quiz.show_results:
            detailed_results = []
            for response in graded:
                question = quiz.get_question(response["question_id"])
                if question is None:
                    continue
                result = {
                    "question_id": question["id"],
                    "question": question["question_text"],
                    "is_correct": response["is_correct"],
                    "marks_obtained": response["marks_obtained"],
                    "max_marks": question["marks"],
                }
                if quiz.show_answers:
                    result["correct_answer"] = correct_answer_for(question)
                    result["explanation"] = question.get("explanation")
                detailed_results.append(DetailedResult(**result))

        return SubmitAttemptResponse(
            attempt_id=attempt.id,
            status=attempt.status,
            total_marks=quiz.total_marks,
            marks_obtained=attempt.marks_obtained,
            percentage=attempt.percentage,
            time_taken=round(elapsed_minutes, 2),
            passing=attempt.percentage >= quiz.passing_percentage,
            detailed_results=detailed_results,
        )

    # ==================== Listing ====================

    def get_attempts(
        self,
        quiz_id: int,
        actor: User,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[AttemptResponse], dict]:
        """
        The quiz author sees every attempt with its responses; anyone else
        only sees summaries of their own attempts.
        """
        quiz = self._get_quiz(quiz_id)
        is_creator = quiz.created_by == actor.id

        query = self.db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id)
        if not is_creator:
            query = query.filter(QuizAttempt.student_id == actor.id)

        # Get total count
        total = query.count()

        # Apply pagination
        offset = (page - 1) * size
        attempts = (
            query.order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
            .offset(offset)
            .limit(size)
            .all()
        )

        items = []
        for attempt in attempts:
            item = AttemptResponse.model_validate(attempt)
            if not is_creator:
                item.responses = None
            items.append(item)

        # Pagination metadata
        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }

        return items, pagination
