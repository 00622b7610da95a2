# quiz_engine/services/statistics.py
from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from quiz_engine.core.exceptions import Forbidden, NotFound
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_attempt import AttemptStatus, QuizAttempt
from quiz_engine.models.user import User
from quiz_engine.schemas.quiz import QuestionStatistics, QuizStatistics


def _rate(part: int, whole: int) -> float:
    return round(part * 100 / whole, 2) if whole else 0.0


class QuizStatisticsService:
    def __init__(self, db: Session):
        self.db = db

    def quiz_statistics(self, quiz_id: int, actor: User) -> QuizStatistics:
        """
        Snapshot of how a quiz has been answered so far.

        Scores are attempt percentages over COMPLETED attempts only; expired and
        in-progress attempts just count towards `total_attempts`.
        """
        quiz = self.db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFound("Quiz not found")

        if quiz.created_by != actor.id:
            raise Forbidden("Unauthorized to view statistics for this quiz")

        total_attempts = (
            self.db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id).count()
        )

        completed = and_(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.status == AttemptStatus.COMPLETED,
        )
        completed_count, average, highest, lowest, passed = (
            self.db.query(
                func.count(QuizAttempt.id),
                func.avg(QuizAttempt.percentage),
                func.max(QuizAttempt.percentage),
                func.min(QuizAttempt.percentage),
                func.sum(
                    case(
                        (QuizAttempt.percentage >= quiz.passing_percentage, 1),
                        else_=0,
                    )
                ),
            )
            .filter(completed)
            .one()
        )
        completed_count = completed_count or 0

        # Per-question figures come from the graded responses
        correct_by_question = {}
        answered_by_question = {}
        graded_responses = self.db.query(QuizAttempt.responses).filter(completed).all()
        for (responses,) in graded_responses:
            for response in responses or []:
                question_id = response.get("question_id")
                answered_by_question[question_id] = (
                    answered_by_question.get(question_id, 0) + 1
                )
                if response.get("is_correct"):
                    correct_by_question[question_id] = (
                        correct_by_question.get(question_id, 0) + 1
                    )

        question_stats = []
        for question in quiz.questions or []:
            answered = answered_by_question.get(question["id"], 0)
            correct = correct_by_question.get(question["id"], 0)
            question_stats.append(
                QuestionStatistics(
                    question_id=question["id"],
                    question_text=question["question_text"],
                    correct_attempts=correct,
                    total_attempts=answered,
                    success_rate=_rate(correct, answered),
                )
            )

        return QuizStatistics(
            quiz_id=quiz.id,
            total_attempts=total_attempts,
            completed_attempts=completed_count,
            average_score=round(float(average or 0), 2),
            highest_score=round(float(highest or 0), 2),
            lowest_score=round(float(lowest or 0), 2),
            pass_rate=_rate(int(passed or 0), completed_count),
            question_stats=question_stats,
        )
