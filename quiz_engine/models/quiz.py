# quiz_engine/models/quiz.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from quiz_engine.core.database import Base, JSONType


class QuestionType:
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"

    CHOICE = (MULTIPLE_CHOICE, SINGLE_CHOICE, TRUE_FALSE)
    SHUFFLEABLE = (MULTIPLE_CHOICE, SINGLE_CHOICE)


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    module_id = Column(
        Integer, ForeignKey("course_modules.id"), nullable=False, index=True
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    instructions = Column(JSONType, nullable=False, default=list)

    # Question bank, authored order:
    # [{"id", "question_text", "question_type", "options": [{"id", "text",
    #   "is_correct", "explanation"}], "correct_answer", "marks", "explanation",
    #   "difficulty_level"}, ...]
    questions = Column(JSONType, nullable=False, default=list)
    total_marks = Column(Integer, default=0, nullable=False)  # sum of question marks

    duration = Column(Integer, nullable=False)  # minutes
    passing_percentage = Column(Integer, default=50, nullable=False)  # 0-100

    # Grading settings
    shuffle_questions = Column(Boolean, default=True, nullable=False)
    shuffle_options = Column(Boolean, default=True, nullable=False)
    show_results = Column(Boolean, default=True, nullable=False)
    show_answers = Column(Boolean, default=True, nullable=False)
    max_attempts = Column(Integer, default=1, nullable=False)
    is_time_limited = Column(Boolean, default=True, nullable=False)

    # Availability window (naive UTC, both optional)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    is_published = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    SETTINGS_FIELDS = (
        "shuffle_questions",
        "shuffle_options",
        "show_results",
        "show_answers",
        "max_attempts",
        "is_time_limited",
    )

    @property
    def settings(self) -> dict:
        return {field: getattr(self, field) for field in self.SETTINGS_FIELDS}

    def get_question(self, question_id: str):
        for question in self.questions or []:
            if question["id"] == question_id:
                return question
        return None

    def calculate_total_marks(self) -> int:
        self.total_marks = sum(int(q["marks"]) for q in self.questions or [])
        return self.total_marks

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', published={self.is_published})>"
