"""Core module: settings, exceptions and the storage type registry."""

from .exceptions import (
    LookupFailure,
    NestedMutationError,
    RecordInvalid,
    StorageFailure,
    StructuralError,
    UnknownTypeError,
)
from .settings import MutationSettings
from .type_registry import TypeEntry, TypeRegistry

__all__ = [
    "LookupFailure",
    "MutationSettings",
    "NestedMutationError",
    "RecordInvalid",
    "StorageFailure",
    "StructuralError",
    "TypeEntry",
    "TypeRegistry",
    "UnknownTypeError",
]
