# quiz_engine/routers/quiz.py
from typing import Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quiz_engine.core.config import settings
from quiz_engine.core.database import get_db
from quiz_engine.core.dependencies import get_current_author, get_current_user
from quiz_engine.models.user import User
from quiz_engine.schemas.quiz import (
    AttemptListResponse,
    AttemptResponse,
    QuestionCreate,
    QuizCreate,
    QuizPublicResponse,
    QuizResponse,
    QuizStatistics,
    QuizUpdate,
    RecordResponsesRequest,
    StartAttemptResponse,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
)
from quiz_engine.services.quiz import QuizService
from quiz_engine.services.quiz_attempt import QuizAttemptService
from quiz_engine.services.statistics import QuizStatisticsService

router = APIRouter(
    prefix="/quizzes",
    tags=["Quizzes"],
    responses={404: {"description": "Not found"}},
)


# ==================== Quiz Endpoints ====================


@router.post("/", response_model=QuizResponse, status_code=201)
def create_quiz(
    quiz_in: QuizCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    """
    Create a new quiz for a course module.
    Only the course instructor (or an admin) can create quizzes.
    The quiz starts unpublished and without questions.
    """
    service = QuizService(db)
    return service.create_quiz(quiz_in, current_user)


@router.get("/{quiz_id}", response_model=Union[QuizResponse, QuizPublicResponse])
def get_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get a quiz by ID.
    The author gets the full quiz including answers; other users only see
    published quizzes, without answers.
    """
    service = QuizService(db)
    return service.get_quiz_view(quiz_id, current_user)


@router.patch("/{quiz_id}", response_model=QuizResponse)
def update_quiz(
    quiz_id: int,
    quiz_in: QuizUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    """
    Update a quiz.
    Questions and duration are locked once the quiz has been attempted.
    """
    service = QuizService(db)
    return service.update_quiz(quiz_id, quiz_in, current_user)


@router.patch("/{quiz_id}/publish", response_model=QuizResponse)
def publish_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    """Publish a quiz so students can attempt it"""
    service = QuizService(db)
    return service.publish_quiz(quiz_id, current_user)


# ==================== Question Endpoints ====================


@router.post("/{quiz_id}/questions", response_model=QuizResponse, status_code=201)
def add_question(
    quiz_id: int,
    question_in: QuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    service = QuizService(db)
    return service.add_question(quiz_id, question_in, current_user)


@router.put("/{quiz_id}/questions/{question_id}", response_model=QuizResponse)
def update_question(
    quiz_id: int,
    question_id: str,
    question_in: QuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    service = QuizService(db)
    return service.update_question(quiz_id, question_id, question_in, current_user)


@router.delete("/{quiz_id}/questions/{question_id}", response_model=QuizResponse)
def remove_question(
    quiz_id: int,
    question_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    service = QuizService(db)
    return service.remove_question(quiz_id, question_id, current_user)


# ==================== Attempt Endpoints ====================


@router.post(
    "/{quiz_id}/attempts", response_model=StartAttemptResponse, status_code=201
)
def start_attempt(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Start a new attempt on a published quiz.
    Returns the questions without correct answers.
    """
    service = QuizAttemptService(db)
    return service.start_attempt(quiz_id, current_user.id)


@router.get("/{quiz_id}/attempts", response_model=AttemptListResponse)
def list_attempts(
    quiz_id: int,
    page: int = Query(1, ge=1),
    size: int = Query(
        settings.default_page_size, ge=1, le=settings.max_page_size
    ),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List attempts on a quiz.
    The quiz author sees every attempt; students only see their own.
    """
    service = QuizAttemptService(db)
    attempts, pagination = service.get_attempts(quiz_id, current_user, page, size)
    return {"attempts": attempts, **pagination}


@router.get(
    "/{quiz_id}/attempts/{attempt_id}", response_model=StartAttemptResponse
)
def resume_attempt(
    quiz_id: int,
    attempt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Resume an attempt that is still in progress"""
    service = QuizAttemptService(db)
    return service.resume_attempt(quiz_id, attempt_id, current_user.id)


@router.put(
    "/{quiz_id}/attempts/{attempt_id}/responses", response_model=AttemptResponse
)
def record_responses(
    quiz_id: int,
    attempt_id: int,
    payload: RecordResponsesRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Save answers on an in-progress attempt without submitting it"""
    service = QuizAttemptService(db)
    return service.record_responses(
        quiz_id, attempt_id, current_user.id, payload.responses
    )


@router.post(
    "/{quiz_id}/attempts/{attempt_id}/submit",
    response_model=SubmitAttemptResponse,
    response_model_exclude_none=True,
)
def submit_attempt(
    quiz_id: int,
    attempt_id: int,
    payload: SubmitAttemptRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Submit an attempt for grading.
    Late submissions on time-limited quizzes expire the attempt instead.
    """
    service = QuizAttemptService(db)
    return service.submit_attempt(
        quiz_id, attempt_id, current_user.id, payload.responses
    )


# ==================== Statistics ====================


@router.get("/{quiz_id}/statistics", response_model=QuizStatistics)
def quiz_statistics(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_author),
):
    """Aggregate results for a quiz. Only the quiz author can view them."""
    service = QuizStatisticsService(db)
    return service.quiz_statistics(quiz_id, current_user)
