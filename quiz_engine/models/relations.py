# quiz_engine/models/relations.py

from sqlalchemy.orm import relationship

# Import all relevant models
from .course import Course, CourseModule
from .quiz import Quiz
from .quiz_attempt import QuizAttempt
from .user import User


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # --- Course System Relationships ---

    # 1. Course to Modules (One-to-Many)
    Course.modules = relationship(
        "CourseModule",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseModule.position",
    )
    CourseModule.course = relationship("Course", back_populates="modules")

    # 2. User to taught Courses (One-to-Many)
    User.courses = relationship("Course", back_populates="instructor")
    Course.instructor = relationship("User", back_populates="courses")

    # --- Quiz System Relationships ---

    # 3. Course to Quizzes (One-to-Many)
    Course.quizzes = relationship("Quiz", back_populates="course")
    Quiz.course = relationship("Course", back_populates="quizzes")

    # 4. Module to Quizzes (One-to-Many)
    CourseModule.quizzes = relationship("Quiz", back_populates="module")
    Quiz.module = relationship("CourseModule", back_populates="quizzes")

    # 5. User to authored Quizzes (One-to-Many)
    User.authored_quizzes = relationship("Quiz", back_populates="creator")
    Quiz.creator = relationship("User", back_populates="authored_quizzes")

    # 6. Quiz to Attempts (One-to-Many); attempts never cascade-delete
    Quiz.attempts = relationship(
        "QuizAttempt",
        back_populates="quiz",
        order_by="QuizAttempt.started_at",
    )
    QuizAttempt.quiz = relationship("Quiz", back_populates="attempts")

    # 7. User to QuizAttempts (One-to-Many)
    User.quiz_attempts = relationship("QuizAttempt", back_populates="student")
    QuizAttempt.student = relationship("User", back_populates="quiz_attempts")
