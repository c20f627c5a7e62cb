"""
RecordStore: the Django ORM adapter used by the mutation engine.

Every attribute read/write, association traversal, lookup, validation and
write performed while running a mutation goes through one store instance.
The store also owns the per-mutation association cache and destruction
marks, so it must not be shared between mutations.
"""

import logging
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional, Union

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import models

from ..backing.model_source import ModelSource
from ..core.exceptions import LookupFailure, StructuralError
from .field_map import AssociationKind, FieldMap

logger = logging.getLogger(__name__)

ModelOrInstance = Union[type[models.Model], models.Model]


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a lookup by identifier: a record, or a miss."""

    record: Optional[models.Model]
    model_name: str
    field: str
    value: Any

    def unwrap(self) -> models.Model:
        if self.record is None:
            raise LookupFailure(self.model_name, self.field, self.value)
        return self.record


class Snapshot(NamedTuple):
    adding: bool
    db: Optional[str]
    values: dict[str, Any]


def _model_of(target: ModelOrInstance) -> type[models.Model]:
    return type(target) if isinstance(target, models.Model) else target


class RecordStore:
    def __init__(self):
        self._associations: dict[tuple[int, str], tuple[models.Model, Any]] = {}
        self._destroyed: dict[int, models.Model] = {}

    # ------------------------------------------------------------------ #
    # Attributes
    # ------------------------------------------------------------------ #
    def field(self, target: ModelOrInstance, name: str) -> models.Field:
        return ModelSource.for_model(_model_of(target)).field(name)

    def get_attribute(self, record: models.Model, name: str) -> Any:
        field = self.field(record, name)
        return getattr(record, field.attname)

    def set_attribute(self, record: models.Model, name: str, value: Any) -> None:
        field = self.field(record, name)
        if field.is_relation and isinstance(value, models.Model):
            setattr(record, field.name, value)
        else:
            setattr(record, field.attname, value)

    def coerce(self, target: ModelOrInstance, name: str, value: Any) -> Any:
        """Convert an input value to the Python value stored for ``name``."""
        if value is None:
            return None
        field = self.field(target, name)
        if field.is_relation:
            field = field.target_field
        try:
            return field.to_python(value)
        except (ValidationError, TypeError, ValueError):
            return value

    def is_new(self, record: models.Model) -> bool:
        return record._state.adding

    def type_name(self, record: models.Model) -> str:
        return type(record).__name__

    def identifier(self, record: models.Model) -> Any:
        return record.pk

    # ------------------------------------------------------------------ #
    # Destruction marks
    # ------------------------------------------------------------------ #
    def mark_for_destruction(self, record: models.Model) -> None:
        self._destroyed[id(record)] = record

    def is_marked_for_destruction(self, record: models.Model) -> bool:
        return id(record) in self._destroyed

    # ------------------------------------------------------------------ #
    # Associations
    # ------------------------------------------------------------------ #
    def _cache_key(self, parent: models.Model, field_map: FieldMap) -> tuple[int, str]:
        return (id(parent), field_map.association)

    def _cache_get(self, parent: models.Model, field_map: FieldMap, default: Any) -> Any:
        cached = self._associations.get(self._cache_key(parent, field_map))
        return default if cached is None else cached[1]

    def _cache_set(self, parent: models.Model, field_map: FieldMap, value: Any) -> None:
        self._associations[self._cache_key(parent, field_map)] = (parent, value)

    def children(self, parent: models.Model, field_map: FieldMap) -> Any:
        """
        Existing related records for an association.

        Returns an ordered list for has-many and a single record (or
        ``None``) for has-one and belongs-to.
        """
        kind = field_map.kind
        if kind is AssociationKind.HAS_MANY:
            cached = self._cache_get(parent, field_map, None)
            if cached is None:
                cached = [] if self.is_new(parent) else self._load_many(parent, field_map)
                self._cache_set(parent, field_map, cached)
            return cached
        if kind is AssociationKind.HAS_ONE:
            key = self._cache_key(parent, field_map)
            if key not in self._associations:
                self._cache_set(parent, field_map, self._load_one(parent, field_map.association))
            return self._associations[key][1]
        if kind is AssociationKind.BELONGS_TO:
            return self._load_one(parent, field_map.relation.name)
        raise StructuralError(
            f"Cannot load children of the root field map {field_map.name}",
            model_name=field_map.model.__name__,
        )

    def _load_many(self, parent: models.Model, field_map: FieldMap) -> list[models.Model]:
        queryset = getattr(parent, field_map.association).all()
        if not queryset.ordered:
            queryset = queryset.order_by("pk")
        return list(queryset)

    def _load_one(self, parent: models.Model, accessor: str) -> Optional[models.Model]:
        try:
            return getattr(parent, accessor)
        except ObjectDoesNotExist:
            return None

    def build_child(self, parent: models.Model, field_map: FieldMap) -> models.Model:
        """Build an unsaved record for the association, linked to ``parent``."""
        child = field_map.model()
        self.link(parent, field_map, child)
        return child

    def link(
        self, parent: models.Model, field_map: FieldMap, child: models.Model
    ) -> tuple[models.Model, str]:
        """
        Attach ``child`` to ``parent`` through the association.

        Returns:
            ``(owner, attribute)``: the record whose foreign key changed and
            the name of that foreign key
        """
        kind = field_map.kind
        if kind is AssociationKind.BELONGS_TO:
            attribute = field_map.relation.name
            setattr(parent, attribute, child)
            return parent, attribute

        attribute = field_map.relation.field.name
        if kind is AssociationKind.HAS_MANY:
            siblings = self.children(parent, field_map)
            setattr(child, attribute, parent)
            if not any(sibling is child for sibling in siblings):
                siblings.append(child)
            return child, attribute
        if kind is AssociationKind.HAS_ONE:
            setattr(child, attribute, parent)
            self._cache_set(parent, field_map, child)
            return child, attribute
        raise StructuralError(
            f"Cannot link records through the root field map {field_map.name}",
            model_name=field_map.model.__name__,
        )

    def find(self, model: type[models.Model], field: str, value: Any) -> LookupResult:
        """Look up one record by ``field`` on the unscoped base manager."""
        column = self.field(model, field)
        coerced = self.coerce(model, column.name, value)
        try:
            record = model._base_manager.get(**{column.attname: coerced})
        except (ObjectDoesNotExist, ValidationError, ValueError, TypeError):
            record = None
        return LookupResult(record, model.__name__, column.name, value)

    # ------------------------------------------------------------------ #
    # Keys
    # ------------------------------------------------------------------ #
    def key_for(self, record: models.Model, attributes: tuple[str, ...]) -> tuple:
        return tuple(
            self.coerce(record, attribute, self.get_attribute(record, attribute))
            for attribute in attributes
        )

    def input_key(self, fragment: dict[str, Any], field_map: FieldMap) -> tuple:
        values = []
        for attribute, input_name in zip(field_map.match_keys, field_map.key_input_names()):
            raw = fragment.get(input_name) if input_name else None
            values.append(self.coerce(field_map.model, attribute, raw))
        return tuple(values)

    # ------------------------------------------------------------------ #
    # Validation and writes
    # ------------------------------------------------------------------ #
    def _pending_relations(self, record: models.Model) -> list[str]:
        pending = []
        for field in record._meta.concrete_fields:
            if not field.is_relation or not field.is_cached(record):
                continue
            target = field.get_cached_value(record)
            if target is not None and self.is_new(target):
                pending.append(field.name)
        return pending

    def pending_targets(self, record: models.Model) -> list[models.Model]:
        """Unsaved records ``record`` holds foreign keys to."""
        return [
            getattr(record, name) for name in self._pending_relations(record)
        ]

    def validate(self, record: models.Model) -> list[tuple[str, str]]:
        """
        Run model validation, returning ``(attribute, message)`` pairs.

        Foreign keys pointing at records that are saved in the same
        mutation are skipped; their column is filled in on save.
        """
        try:
            record.full_clean(exclude=self._pending_relations(record))
        except ValidationError as exc:
            return [
                (attribute, str(message))
                for attribute, messages in exc.message_dict.items()
                for message in messages
            ]
        return []

    def save(self, record: models.Model) -> None:
        record.save()

    def delete(self, record: models.Model) -> None:
        if self.is_new(record):
            return
        record.delete()

    def snapshot(self, record: models.Model) -> Snapshot:
        return Snapshot(
            adding=record._state.adding,
            db=record._state.db,
            values={
                field.attname: record.__dict__[field.attname]
                for field in record._meta.concrete_fields
                if field.attname in record.__dict__
            },
        )

    def restore(self, record: models.Model, snapshot: Snapshot) -> None:
        record._state.adding = snapshot.adding
        record._state.db = snapshot.db
        # Written through __dict__ so cached related objects survive.
        record.__dict__.update(snapshot.values)
