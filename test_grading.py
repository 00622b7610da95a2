"""
Unit tests for the presentation and evaluation helpers
"""

import random

import pytest

from quiz_engine.services.grading import (
    compute_percentage,
    empty_response,
    evaluate_response,
    grade_responses,
    merge_responses,
    present_questions,
    sanitize_question,
)


def question(qid, qtype="SINGLE_CHOICE", correct=("b",), marks=1, **extra):
    data = {
        "id": qid,
        "question_text": f"Question {qid}",
        "question_type": qtype,
        "options": [
            {"id": oid, "text": oid.upper(), "is_correct": oid in correct, "explanation": None}
            for oid in ("a", "b", "c")
        ],
        "correct_answer": None,
        "marks": marks,
        "explanation": "secret",
        "difficulty_level": "EASY",
    }
    data.update(extra)
    return data


def test_present_questions_keeps_authored_order_without_shuffle():
    questions = [question("q1"), question("q2"), question("q3")]
    presented = present_questions(questions, False, False, random.Random(0))

    assert [q["id"] for q, _ in presented] == ["q1", "q2", "q3"]
    assert all(order == ["a", "b", "c"] for _, order in presented)


def test_true_false_options_are_never_shuffled():
    tf = question("tf", qtype="TRUE_FALSE")
    for seed in range(20):
        [(_, order)] = present_questions([tf], False, True, random.Random(seed))
        assert order == ["a", "b", "c"]


def test_sanitize_question_drops_answer_key():
    sanitized = sanitize_question(question("q1"), ["c", "a", "b"])

    assert [opt["id"] for opt in sanitized["options"]] == ["c", "a", "b"]
    assert "explanation" not in sanitized
    assert "correct_answer" not in sanitized
    assert all(set(opt) == {"id", "text"} for opt in sanitized["options"])


def test_merge_responses_does_not_touch_stored_copy():
    stored = [empty_response("q1", ["a", "b", "c"])]
    merged = merge_responses(stored, [{"question_id": "q1", "selected_options": ["b", "b"]}])

    assert merged[0]["selected_options"] == ["b"]
    assert merged[0]["text_answer"] == ""
    assert stored[0]["selected_options"] == []


@pytest.mark.parametrize(
    "qtype, correct, selected, expected",
    [
        ("MULTIPLE_CHOICE", ("a", "c"), ["c", "a"], True),
        ("MULTIPLE_CHOICE", ("a", "c"), ["a"], False),
        ("MULTIPLE_CHOICE", ("a", "c"), ["a", "b", "c"], False),
        ("SINGLE_CHOICE", ("b",), [], False),
        ("TRUE_FALSE", ("a",), ["a", "b"], True),
        ("TRUE_FALSE", ("a",), ["b", "a"], False),
    ],
)
def test_evaluate_choice_questions(qtype, correct, selected, expected):
    response = {"selected_options": selected, "text_answer": ""}
    assert evaluate_response(question("q", qtype=qtype, correct=correct), response) is expected


def test_evaluate_short_answer():
    q = question("q", qtype="SHORT_ANSWER", options=[], correct_answer=" Third Normal Form ")

    assert evaluate_response(q, {"text_answer": "third normal form"}) is True
    assert evaluate_response(q, {"text_answer": "3NF"}) is False
    assert evaluate_response(q, {"text_answer": ""}) is False


def test_removed_question_scores_zero():
    responses = [
        {**empty_response("q1", []), "selected_options": ["b"]},
        {**empty_response("gone", []), "selected_options": ["b"]},
    ]
    graded, total = grade_responses({"q1": question("q1", marks=4)}, responses)

    assert total == 4
    assert [r["marks_obtained"] for r in graded] == [4, 0]
    assert graded[1]["is_correct"] is False


def test_compute_percentage_rounds_to_two_places():
    assert compute_percentage(1, 3) == 33.33
    assert compute_percentage(2, 3) == 66.67
    with pytest.raises(ZeroDivisionError):
        compute_percentage(1, 0)
