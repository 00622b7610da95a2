# quiz_engine/services/grading.py
"""
Pure helpers for presenting questions to a test-taker and grading responses.

Questions and responses are the plain dicts stored in the JSON columns of
``quizzes.questions`` and ``quiz_attempts.responses``. Nothing here touches
the database.
"""

import copy
import random
from typing import Dict, Iterable, List, Optional, Tuple

from quiz_engine.models.quiz import QuestionType


def _normalise_text(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for option_id in ids:
        if option_id not in seen:
            seen.add(option_id)
            result.append(option_id)
    return result


def correct_option_ids(question: dict) -> List[str]:
    return [opt["id"] for opt in question.get("options") or [] if opt.get("is_correct")]


# ==================== Presentation ====================


def present_questions(
    questions: List[dict],
    shuffle_questions: bool,
    shuffle_options: bool,
    rng: random.Random,
) -> List[Tuple[dict, List[str]]]:
    """
    Pick the order a new attempt sees the questions in.

    Returns ``(question, option_order)`` pairs. Options are only permuted for
    MULTIPLE_CHOICE and SINGLE_CHOICE questions, each question independently.
    """
    ordered = list(questions)
    if shuffle_questions:
        rng.shuffle(ordered)

    presented = []
    for question in ordered:
        option_order = [opt["id"] for opt in question.get("options") or []]
        if shuffle_options and question["question_type"] in QuestionType.SHUFFLEABLE:
            rng.shuffle(option_order)
        presented.append((question, option_order))
    return presented


def sanitize_question(question: dict, option_order: Optional[List[str]] = None) -> dict:
    """Project a question to the view a test-taker may see (no answer key)."""
    options_by_id = {opt["id"]: opt for opt in question.get("options") or []}
    if option_order is None:
        option_order = list(options_by_id)

    return {
        "id": question["id"],
        "question_text": question["question_text"],
        "question_type": question["question_type"],
        "options": [
            {"id": option_id, "text": options_by_id[option_id]["text"]}
            for option_id in option_order
            if option_id in options_by_id
        ],
        "marks": question["marks"],
        "difficulty_level": question.get("difficulty_level", "MEDIUM"),
    }


def empty_response(question_id: str, option_order: List[str]) -> dict:
    return {
        "question_id": question_id,
        "option_order": list(option_order),
        "selected_options": [],
        "text_answer": "",
        "is_correct": None,
        "marks_obtained": None,
    }


# ==================== Responses ====================


def merge_responses(stored: List[dict], incoming: Iterable) -> List[dict]:
    """
    Copy ``stored`` and overwrite the answers of every response whose question
    id appears in ``incoming``. Unknown question ids are ignored.

    ``incoming`` items may be dicts or ``ResponseSubmission`` models.
    """
    merged = copy.deepcopy(stored)
    by_question = {response["question_id"]: response for response in merged}

    for item in incoming:
        if not isinstance(item, dict):
            item = item.model_dump()
        target = by_question.get(item.get("question_id"))
        if target is None:
            continue
        target["selected_options"] = _dedupe(item.get("selected_options") or [])
        target["text_answer"] = item.get("text_answer") or ""

    return merged


# ==================== Evaluation ====================


def evaluate_response(question: dict, response: dict) -> bool:
    """Decide whether one response answers its question correctly."""
    question_type = question["question_type"]
    selected = response.get("selected_options") or []

    if question_type in (QuestionType.MULTIPLE_CHOICE, QuestionType.SINGLE_CHOICE):
        # Exact set match, no partial credit
        return set(selected) == set(correct_option_ids(question))

    if question_type == QuestionType.TRUE_FALSE:
        correct = correct_option_ids(question)
        if not correct or not selected:
            return False
        return selected[0] == correct[0]

    if question_type == QuestionType.SHORT_ANSWER:
        expected = _normalise_text(question.get("correct_answer"))
        return bool(expected) and _normalise_text(response.get("text_answer")) == expected

    raise ValueError(f"Unknown question type: {question_type}")


def grade_responses(
    questions_by_id: Dict[str, dict], responses: List[dict]
) -> Tuple[List[dict], int]:
    """
    Grade a copy of ``responses`` against the authoritative questions.

    Returns the graded responses and the total marks obtained. A response whose
    question is no longer part of the quiz scores zero.
    """
    graded = copy.deepcopy(responses)
    total = 0

    for response in graded:
        question = questions_by_id.get(response["question_id"])
        is_correct = question is not None and evaluate_response(question, response)
        response["is_correct"] = is_correct
        response["marks_obtained"] = int(question["marks"]) if is_correct else 0
        total += response["marks_obtained"]

    return graded, total


def compute_percentage(marks_obtained: int, total_marks: int) -> float:
    if total_marks <= 0:
        raise ZeroDivisionError("total_marks must be positive")
    return round(marks_obtained * 100 / total_marks, 2)


def correct_answer_for(question: dict):
    """The answer key revealed in detailed results."""
    if question["question_type"] == QuestionType.SHORT_ANSWER:
        return question.get("correct_answer")
    return [opt for opt in question.get("options") or [] if opt.get("is_correct")]
