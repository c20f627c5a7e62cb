"""
Validation of touched records and mapping of their errors back onto the
input paths the client submitted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from django.core.exceptions import NON_FIELD_ERRORS
from django.db import models

from .field_map import AssociationKind, FieldMap
from .matcher import Matcher
from .persistence import unique_records
from .results import Change, InputPath
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnknownError:
    """A validation error that could not be attributed to an input path."""

    model_type: str
    model_id: Any
    attribute: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "modelType": self.model_type,
            "modelId": self.model_id,
            "attribute": self.attribute,
            "message": self.message,
        }


@dataclass
class ErrorAccumulator:
    """
    Path-keyed validation messages plus unattributable errors.

    ``invalid_fields`` maps input paths to messages in the order they were
    found; several messages at one path are kept in order.
    """

    invalid_fields: dict[InputPath, list[str]] = field(default_factory=dict)
    unknown: list[UnknownError] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.invalid_fields or self.unknown)

    def add(self, path: Sequence[Any], message: str) -> None:
        self.invalid_fields.setdefault(tuple(path), []).append(message)

    def add_unknown(self, error: UnknownError) -> None:
        self.unknown.append(error)

    def merge(self, other: "ErrorAccumulator") -> "ErrorAccumulator":
        merged = ErrorAccumulator(
            {path: list(messages) for path, messages in self.invalid_fields.items()},
            list(self.unknown),
        )
        for path, messages in other.invalid_fields.items():
            merged.invalid_fields.setdefault(path, []).extend(messages)
        merged.unknown.extend(other.unknown)
        return merged


class PathResolver:
    """
    Finds the input path leading to a record's attribute by walking the
    field map and input tree from the root, replaying the matcher's
    pairings at each level.
    """

    def __init__(
        self,
        record: models.Model,
        inputs: dict[str, Any],
        field_map: FieldMap,
        matcher: Matcher,
    ):
        self.record = record
        self.inputs = inputs
        self.field_map = field_map
        self.matcher = matcher

    def resolve(self, target: models.Model, attribute: str) -> Optional[InputPath]:
        return self._search(self.record, self.inputs, self.field_map, target, attribute)

    def _search(
        self,
        record: models.Model,
        fragment: dict[str, Any],
        field_map: FieldMap,
        target: models.Model,
        attribute: str,
    ) -> Optional[InputPath]:
        if record is target:
            input_name = field_map.input_name_for(attribute)
            if input_name is not None:
                return (input_name,)
            nested = field_map.nested_for_association(attribute)
            if nested is not None:
                return (nested.name,)
            return None

        for nested in field_map.nested:
            if nested.name not in fragment:
                continue
            for result in self.matcher.pairings(record, nested, fragment[nested.name]):
                if not result.recurses:
                    continue
                found = self._search(result.record, result.fragment, nested, target, attribute)
                if found is None:
                    continue
                prefix: InputPath = (nested.name,)
                if nested.kind is AssociationKind.HAS_MANY and result.locator is not None:
                    prefix += (result.locator,)
                return prefix + found
        return None


class Validator:
    """Validates every record a mutation touched and attributes the errors."""

    def __init__(
        self,
        record: models.Model,
        inputs: dict[str, Any],
        field_map: FieldMap,
        changes: Sequence[Change],
        store: RecordStore,
        matcher: Matcher,
    ):
        self.record = record
        self.changes = list(changes)
        self.store = store
        self.resolver = PathResolver(record, inputs, field_map, matcher)

    def validate(self) -> ErrorAccumulator:
        direct: dict[tuple[int, str], InputPath] = {}
        for change in self.changes:
            if change.attribute is None or change.input_path is None:
                continue
            direct.setdefault((id(change.record), change.attribute), change.input_path)

        records = unique_records(self.changes)
        if not any(record is self.record for record in records):
            records.insert(0, self.record)

        accumulator = ErrorAccumulator()
        for record in records:
            if self.store.is_marked_for_destruction(record):
                continue
            errors = self.store.validate(record)
            if errors:
                accumulator = accumulator.merge(self._attribute(record, errors, direct))
        if accumulator:
            logger.warning(
                "Mutation on %s is invalid: %s path error(s), %s unknown",
                self.store.type_name(self.record),
                len(accumulator.invalid_fields),
                len(accumulator.unknown),
            )
        return accumulator

    def _attribute(
        self,
        record: models.Model,
        errors: list[tuple[str, str]],
        direct: dict[tuple[int, str], InputPath],
    ) -> ErrorAccumulator:
        accumulator = ErrorAccumulator()
        for attribute, message in errors:
            path = None
            if attribute != NON_FIELD_ERRORS:
                path = direct.get((id(record), attribute)) or self.resolver.resolve(record, attribute)
            if path is not None:
                accumulator.add(path, message)
            else:
                accumulator.add_unknown(
                    UnknownError(
                        model_type=self.store.type_name(record),
                        model_id=self.store.identifier(record),
                        attribute=attribute,
                        message=message,
                    )
                )
        return accumulator
