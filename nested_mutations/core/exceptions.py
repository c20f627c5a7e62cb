"""
Custom exceptions for nested mutations.

This module defines specific exception types for declaration-time errors
(field maps, type lookups) and for failures while running a mutation.
"""

from typing import Any, Optional, Sequence


class NestedMutationError(Exception):
    """Base exception for nested mutation errors."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        super().__init__(message)


class StructuralError(NestedMutationError):
    """Raised when a field map or backed type is declared incorrectly."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        association: Optional[str] = None,
    ):
        self.association = association
        super().__init__(message, model_name)


class UnknownTypeError(StructuralError):
    """Raised when a storage type has no registered GraphQL type."""

    def __init__(self, message: str, storage_type: Any = None):
        self.storage_type = storage_type
        super().__init__(message)


class LookupFailure(NestedMutationError):
    """Raised when a re-association cannot find the referenced record."""

    def __init__(self, model_name: str, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(
            f"{model_name} with {field} '{value}' does not exist.", model_name
        )


class RecordInvalid(NestedMutationError):
    """Raised when one or more records fail validation during a save."""

    def __init__(self, records: Sequence[Any]):
        self.records = list(records)
        names = sorted({type(record).__name__ for record in self.records})
        super().__init__(
            f"Validation failed for {len(self.records)} record(s): {', '.join(names)}"
        )


class StorageFailure(NestedMutationError):
    """Raised when the database rejects a write while persisting changes."""

    pass
