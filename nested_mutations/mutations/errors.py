"""
Structured failure raised when a mutation's records do not validate.
"""

from typing import Any, Optional

from ..defaults import DEFAULT_VALIDATION_MESSAGE
from ..core.exceptions import NestedMutationError
from .validation import ErrorAccumulator, UnknownError


class MutationValidationError(NestedMutationError):
    """
    Raised with every validation problem of a mutation.

    Attributes:
        message: Human readable summary
        values: The submitted inputs, for redisplaying a form
        invalid_fields: Input path -> messages
        unknown_errors: Errors that could not be attributed to an input
    """

    def __init__(
        self,
        errors: ErrorAccumulator,
        values: Any = None,
        message: Optional[str] = None,
        model_name: Optional[str] = None,
    ):
        self.message = message or DEFAULT_VALIDATION_MESSAGE
        self.values = values
        self.invalid_fields = errors.invalid_fields
        self.unknown_errors: list[UnknownError] = list(errors.unknown)
        super().__init__(self.message, model_name)

    def problems(self) -> list[dict[str, Any]]:
        """
        Flatten the invalid fields into ``{"path", "explanation"}`` entries.

        A path holding several messages keeps them as a list.
        """
        problems = []
        for path, messages in self.invalid_fields.items():
            explanation = messages[0] if len(messages) == 1 else list(messages)
            problems.append({"path": list(path), "explanation": explanation})
        return problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "value": self.values,
            "problems": self.problems(),
            "unknown": [error.to_dict() for error in self.unknown_errors],
        }
