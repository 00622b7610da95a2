# quiz_engine/models/quiz_attempt.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from quiz_engine.core.database import Base, JSONType


class AttemptStatus:
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"

    TERMINAL = (COMPLETED, EXPIRED)


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # One entry per presented question, in presentation order:
    # [{"question_id", "option_order", "selected_options", "text_answer",
    #   "is_correct", "marks_obtained"}, ...]
    responses = Column(JSONType, nullable=False, default=list)

    # Scoring (filled in by evaluation only)
    total_marks = Column(Integer, nullable=True)
    marks_obtained = Column(Integer, nullable=True)
    percentage = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    status = Column(
        String(20), default=AttemptStatus.IN_PROGRESS, nullable=False, index=True
    )

    # Time tracking (naive UTC)
    started_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

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

    @property
    def is_terminal(self) -> bool:
        return self.status in AttemptStatus.TERMINAL

    def __repr__(self):
        return (
            f"<QuizAttempt(id={self.id}, student_id={self.student_id}, "
            f"status='{self.status}', percentage={self.percentage})>"
        )
