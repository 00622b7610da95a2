# quiz_engine/services/course_registry.py
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from quiz_engine.models.course import Course, CourseModule


class CourseRegistry:
    """Answers the two questions quiz authoring asks about courses."""

    def __init__(self, db: Session):
        self.db = db

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.db.query(Course).filter(Course.id == course_id).first()

    def has_module(self, course_id: int, module_id: int) -> bool:
        return (
            self.db.query(CourseModule.id)
            .filter(
                and_(
                    CourseModule.id == module_id,
                    CourseModule.course_id == course_id,
                )
            )
            .first()
            is not None
        )
