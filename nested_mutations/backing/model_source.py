"""
ModelSource implementation.

Wraps a Django model so field maps and backed types can ask for column types,
descriptions and relations without touching ``_meta`` directly.
"""

import threading
import weakref
from typing import Any, Optional

import graphene
from django.db import models
from django.db.models.fields.related import ForeignObjectRel
from django.utils.functional import cached_property

from ..core.exceptions import StructuralError
from ..core.type_registry import TypeRegistry

# Mapping of Django field types to storage type names
FIELD_STORAGE_TYPES = {
    models.AutoField: "id",
    models.BigAutoField: "id",
    models.SmallAutoField: "id",
    models.BigIntegerField: "integer",
    models.BooleanField: "boolean",
    models.CharField: "string",
    models.DateField: "date",
    models.DateTimeField: "datetime",
    models.DecimalField: "decimal",
    models.EmailField: "string",
    models.FileField: "string",
    models.FilePathField: "string",
    models.FloatField: "float",
    models.GenericIPAddressField: "string",
    models.ImageField: "string",
    models.IntegerField: "integer",
    models.JSONField: "json",
    models.PositiveBigIntegerField: "integer",
    models.PositiveIntegerField: "integer",
    models.PositiveSmallIntegerField: "integer",
    models.SlugField: "string",
    models.SmallIntegerField: "integer",
    models.TextField: "text",
    models.BinaryField: "binary",
    models.DurationField: "duration",
    models.TimeField: "time",
    models.URLField: "string",
    models.UUIDField: "uuid",
    models.ForeignKey: "id",
    models.OneToOneField: "id",
}


def storage_type_for_field(field: models.Field) -> str:
    if field.is_relation:
        return "id"
    if getattr(field, "choices", None):
        return "enum"
    for klass in type(field).__mro__:
        if klass in FIELD_STORAGE_TYPES:
            return FIELD_STORAGE_TYPES[klass]
    raise StructuralError(
        f"No storage type known for {type(field).__name__} '{field.name}'",
        model_name=field.model.__name__ if getattr(field, "model", None) else None,
    )


class ModelSource:
    """
    Column and relation lookups for one Django model.
    """

    _cache: "weakref.WeakKeyDictionary[type[models.Model], ModelSource]" = (
        weakref.WeakKeyDictionary()
    )
    _cache_lock = threading.Lock()

    def __init__(self, model: type[models.Model]):
        if not (isinstance(model, type) and issubclass(model, models.Model)):
            raise StructuralError(f"{model!r} is not a Django model class")
        self.model = model
        self._meta = model._meta

    @classmethod
    def for_model(cls, model: type[models.Model]) -> "ModelSource":
        with cls._cache_lock:
            cached = cls._cache.get(model)
            if cached is None:
                cached = cls(model)
                cls._cache[model] = cached
            return cached

    @property
    def name(self) -> str:
        return self.model.__name__

    @cached_property
    def _columns(self) -> dict[str, models.Field]:
        columns = {}
        for field in self._meta.concrete_fields:
            columns[field.name] = field
            columns[field.attname] = field
        return columns

    def field(self, name: str) -> models.Field:
        """Return the concrete field for a field name or column name."""
        try:
            return self._columns[str(name)]
        except KeyError:
            raise StructuralError(
                f"The field {name} was not found on the model {self.name}",
                model_name=self.name,
            ) from None

    def exists(self, name: str) -> bool:
        return str(name) in self._columns

    def all(self) -> list[str]:
        """Column names in declaration order."""
        return [field.attname for field in self._meta.concrete_fields]

    def storage_type(self, name: str) -> str:
        field = self.field(name)
        base_field = getattr(field, "base_field", None)
        if base_field is not None:
            return storage_type_for_field(base_field)
        return storage_type_for_field(field)

    def _wrap(self, name: str, graphql_type: Any) -> Any:
        if getattr(self.field(name), "base_field", None) is not None:
            return graphene.List(graphql_type)
        return graphql_type

    def type(self, name: str) -> Any:
        return self._wrap(name, TypeRegistry.get(self.storage_type(name)).output)

    def input_type(self, name: str) -> Any:
        return self._wrap(name, TypeRegistry.get(self.storage_type(name)).input)

    def description(self, name: str) -> Optional[str]:
        field = self.field(name)
        text = getattr(field, "db_comment", None) or field.help_text
        return str(text) if text else None

    def is_required(self, name: str) -> bool:
        field = self.field(name)
        if field.null or field.blank:
            return False
        if field.has_default() or getattr(field, "auto_now", False) or getattr(field, "auto_now_add", False):
            return False
        return not (field.primary_key and isinstance(field, models.AutoField))

    def relation(self, name: str) -> Any:
        """
        Return the relation object for a forward relation field name or a
        reverse accessor name, or ``None`` if there is none.
        """
        for field in self._meta.get_fields(include_hidden=False):
            if isinstance(field, ForeignObjectRel):
                if field.get_accessor_name() == name:
                    return field
            elif field.is_relation and field.name == name:
                return field
        return None
