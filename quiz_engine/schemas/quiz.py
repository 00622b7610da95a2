# quiz_engine/schemas/quiz.py
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from quiz_engine.core.config import settings as app_settings

QuestionTypeLiteral = Literal[
    "MULTIPLE_CHOICE", "SINGLE_CHOICE", "TRUE_FALSE", "SHORT_ANSWER"
]
DifficultyLiteral = Literal["EASY", "MEDIUM", "HARD"]
AttemptStatusLiteral = Literal["IN_PROGRESS", "COMPLETED", "EXPIRED"]


# ==================== Question Schemas ====================


class OptionCreate(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False
    explanation: Optional[str] = None


class QuestionCreate(BaseModel):
    """Question as submitted by the author; ids are assigned by the server"""

    question_text: str = Field(..., min_length=1)
    question_type: QuestionTypeLiteral
    options: List[OptionCreate] = Field(default_factory=list)
    correct_answer: Optional[str] = Field(
        None, description="Required for SHORT_ANSWER questions"
    )
    marks: int = Field(default=1, ge=1)
    explanation: Optional[str] = None
    difficulty_level: DifficultyLiteral = "MEDIUM"


class OptionResponse(BaseModel):
    """Option with its answer key - AUTHOR ONLY"""

    id: str
    text: str
    is_correct: bool
    explanation: Optional[str] = None


class QuestionResponse(BaseModel):
    """Authoritative question - AUTHOR ONLY (includes correct answers)"""

    id: str
    question_text: str
    question_type: QuestionTypeLiteral
    options: List[OptionResponse] = []
    correct_answer: Optional[str] = None
    marks: int
    explanation: Optional[str] = None
    difficulty_level: DifficultyLiteral = "MEDIUM"


class SanitizedOption(BaseModel):
    id: str
    text: str


class SanitizedQuestion(BaseModel):
    """Question as shown to a test-taker - WITHOUT correct answers or explanations"""

    id: str
    question_text: str
    question_type: QuestionTypeLiteral
    options: List[SanitizedOption] = []
    marks: int
    difficulty_level: DifficultyLiteral = "MEDIUM"


# ==================== Quiz Schemas ====================


class GradingSettings(BaseModel):
    shuffle_questions: bool = True
    shuffle_options: bool = True
    show_results: bool = True
    show_answers: bool = True
    max_attempts: int = Field(default=app_settings.default_max_attempts, ge=1)
    is_time_limited: bool = True


class GradingSettingsUpdate(BaseModel):
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    show_results: Optional[bool] = None
    show_answers: Optional[bool] = None
    max_attempts: Optional[int] = Field(None, ge=1)
    is_time_limited: Optional[bool] = None


class QuizCreate(BaseModel):
    title: str = Field(..., max_length=255)
    course_id: int
    module_id: int
    description: str
    instructions: List[str] = Field(default_factory=list)
    duration: int = Field(..., description="Time limit in minutes")
    passing_percentage: int = Field(
        default=app_settings.default_passing_percentage, ge=0, le=100
    )
    settings: GradingSettings = Field(default_factory=GradingSettings)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    instructions: Optional[List[str]] = None
    duration: Optional[int] = None
    passing_percentage: Optional[int] = Field(None, ge=0, le=100)
    settings: Optional[GradingSettingsUpdate] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    questions: Optional[List[QuestionCreate]] = Field(
        None, description="Replaces the whole question set"
    )


class QuizBaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    module_id: int
    title: str
    description: str
    instructions: List[str] = []
    total_marks: int
    passing_percentage: int
    duration: int
    settings: GradingSettings
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_published: bool
    created_by: int
    created_at: datetime
    updated_at: datetime


class QuizResponse(QuizBaseResponse):
    """Quiz as seen by its author"""

    questions: List[QuestionResponse] = []


class QuizPublicResponse(QuizBaseResponse):
    """Quiz as seen by everyone else - questions are sanitized"""

    questions: List[SanitizedQuestion] = []


# ==================== Attempt Schemas ====================


class ResponseSubmission(BaseModel):
    """A student's answer to one question, keyed by the question's stable id"""

    question_id: str
    selected_options: Optional[List[str]] = None
    text_answer: Optional[str] = None


class RecordResponsesRequest(BaseModel):
    responses: List[ResponseSubmission] = Field(..., min_length=1)


class SubmitAttemptRequest(BaseModel):
    responses: List[ResponseSubmission] = Field(default_factory=list)


class StartAttemptResponse(BaseModel):
    attempt_id: int
    quiz_id: int
    status: AttemptStatusLiteral
    questions: List[SanitizedQuestion]
    duration: int
    is_time_limited: bool
    started_at: datetime
    attempts_used: int
    attempts_remaining: int
    message: Optional[str] = None


class StoredResponse(BaseModel):
    question_id: str
    selected_options: List[str] = []
    text_answer: str = ""
    is_correct: Optional[bool] = None
    marks_obtained: Optional[int] = None


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    student_id: int
    status: AttemptStatusLiteral
    started_at: datetime
    submitted_at: Optional[datetime] = None
    total_marks: Optional[int] = None
    marks_obtained: Optional[int] = None
    percentage: Optional[float] = None
    responses: Optional[List[StoredResponse]] = None


class AttemptListResponse(BaseModel):
    attempts: List[AttemptResponse]
    total: int
    page: int
    size: int
    total_pages: int


class DetailedResult(BaseModel):
    question_id: str
    question: str
    is_correct: bool
    marks_obtained: int
    max_marks: int
    # Only present when the quiz shows answers
    correct_answer: Optional[Union[str, List[OptionResponse]]] = None
    explanation: Optional[str] = None


class SubmitAttemptResponse(BaseModel):
    attempt_id: int
    status: AttemptStatusLiteral
    total_marks: int
    marks_obtained: int
    percentage: float
    time_taken: float = Field(..., description="Minutes between start and submit")
    passing: bool
    detailed_results: Optional[List[DetailedResult]] = None


# ==================== Statistics Schemas ====================


class QuestionStatistics(BaseModel):
    question_id: str
    question_text: str
    correct_attempts: int
    total_attempts: int
    success_rate: float


class QuizStatistics(BaseModel):
    quiz_id: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    question_stats: List[QuestionStatistics]
