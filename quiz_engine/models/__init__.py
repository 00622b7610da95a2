"""
Models package initialization
Import all models and setup relationships
"""

from .course import Course, CourseModule
from .quiz import QuestionType, Quiz
from .quiz_attempt import AttemptStatus, QuizAttempt

# Import and setup relationships
from .relations import setup_relationships
from .user import User

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "AttemptStatus",
    "Course",
    "CourseModule",
    "QuestionType",
    "Quiz",
    "QuizAttempt",
    "User",
]
