"""
Nested mutation engine.

Field maps describe inputs; the runner matches, applies, validates and saves
them; the mutator exposes a field map as a graphene mutation.
"""

from .applier import ChangeApplier
from .errors import MutationValidationError
from .field_map import AssociationKind, FieldMap, InputField
from .matcher import Matcher
from .mutator import Mutator
from .persistence import PersistenceCoordinator
from .results import Change, ChangeAction, MatchAction, MatchResult
from .runner import MutationRunner
from .store import LookupResult, RecordStore
from .validation import ErrorAccumulator, PathResolver, UnknownError, Validator

__all__ = [
    "AssociationKind",
    "Change",
    "ChangeAction",
    "ChangeApplier",
    "ErrorAccumulator",
    "FieldMap",
    "InputField",
    "LookupResult",
    "MatchAction",
    "MatchResult",
    "Matcher",
    "MutationRunner",
    "MutationValidationError",
    "Mutator",
    "PathResolver",
    "PersistenceCoordinator",
    "RecordStore",
    "UnknownError",
    "Validator",
]
