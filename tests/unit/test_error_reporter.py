"""
Unit tests for the structured validation failure.
"""

import pytest

from nested_mutations.mutations.errors import MutationValidationError
from nested_mutations.mutations.validation import ErrorAccumulator, UnknownError

pytestmark = pytest.mark.unit


def _errors():
    errors = ErrorAccumulator()
    errors.add(["firstName"], "This field cannot be blank.")
    errors.add(("posts", 1, "subject"), "Ensure this value has at most 20 characters (it has 31).")
    errors.add(("posts", 1, "subject"), "Subject is reserved.")
    errors.add_unknown(UnknownError("Author", 7, "email", "Enter a valid email address."))
    return errors


def test_problems_flatten_paths_in_order():
    """problems should list each path once, in order, grouping repeated messages."""
    error = MutationValidationError(_errors(), values={"firstName": ""})

    assert error.problems() == [
        {"path": ["firstName"], "explanation": "This field cannot be blank."},
        {
            "path": ["posts", 1, "subject"],
            "explanation": [
                "Ensure this value has at most 20 characters (it has 31).",
                "Subject is reserved.",
            ],
        },
    ]


def test_to_dict_payload():
    """to_dict should return the message, values, problems and unknown errors."""
    error = MutationValidationError(_errors(), values={"firstName": ""})
    payload = error.to_dict()

    assert payload["message"] == "Some of your changes could not be saved."
    assert payload["value"] == {"firstName": ""}
    assert payload["unknown"] == [
        {
            "modelType": "Author",
            "modelId": 7,
            "attribute": "email",
            "message": "Enter a valid email address.",
        }
    ]
    assert len(payload["problems"]) == 2
    assert str(error) == "Some of your changes could not be saved."


def test_custom_message():
    """A custom message should replace the default one."""
    error = MutationValidationError(ErrorAccumulator(), message="Nope.")

    assert error.to_dict() == {"message": "Nope.", "value": None, "problems": [], "unknown": []}


def test_accumulators_merge_without_mutating_either_side():
    """merge should return a new accumulator and leave both sides untouched."""
    left = ErrorAccumulator()
    left.add(("name",), "first")
    right = ErrorAccumulator()
    right.add(("name",), "second")
    right.add_unknown(UnknownError("Tag", None, "__all__", "Duplicate."))

    merged = left.merge(right)

    assert merged.invalid_fields == {("name",): ["first", "second"]}
    assert len(merged.unknown) == 1
    assert left.invalid_fields == {("name",): ["first"]}
    assert not left.unknown
    assert not ErrorAccumulator()
    assert merged
