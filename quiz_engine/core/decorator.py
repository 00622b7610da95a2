import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DBException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def db_exception(func):
    """
    Translate SQLAlchemy failures raised by a service method into DBException.

    The decorated function must be a method of a service holding its session
    as ``self.db``; the session is rolled back before the error is re-raised.
    Domain errors (QuizException and friends) pass through untouched.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Integrity error in {func.__qualname__}")
            raise DBException("Duplicate entry: already exists", 409)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Database error in {func.__qualname__}", exc_info=True)
            raise DBException("Database error occurred", 500)

    return wrapper
