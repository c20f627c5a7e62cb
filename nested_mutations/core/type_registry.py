"""
Lookup table mapping storage types to GraphQL scalar types.

Storage types are short names (``"string"``, ``"integer"``, ...) shared by
every backing source, so Django columns and search-index fields resolve to
the same GraphQL scalars.
"""

import logging
import threading
from typing import Any, Callable, NamedTuple, Optional, Union

import graphene
from django.utils.module_loading import import_string

from .exceptions import UnknownTypeError

logger = logging.getLogger(__name__)

TypeReference = Union[type, str, Callable[[], Any]]


class TypeEntry(NamedTuple):
    output: Any
    input: Any


def _resolve(reference: TypeReference) -> Any:
    if isinstance(reference, str):
        return import_string(reference)
    if callable(reference) and not isinstance(reference, type):
        return reference()
    return reference


class TypeRegistry:
    """Registry of storage type name -> (output type, input type)."""

    _types: dict[str, TypeEntry] = {}
    _lock = threading.Lock()

    @classmethod
    def add(
        cls,
        type: str,
        output_type: TypeReference,
        input_type: Optional[TypeReference] = None,
    ) -> TypeEntry:
        """
        Register (or replace) the GraphQL types used for a storage type.

        Args:
            type: Storage type name, e.g. ``"string"``
            output_type: GraphQL type, a callable returning one, or a dotted path
            input_type: Input type (defaults to the output type)

        Returns:
            The stored entry
        """
        output = _resolve(output_type)
        entry = TypeEntry(output, _resolve(input_type) if input_type is not None else output)
        with cls._lock:
            cls._types[str(type)] = entry
        logger.debug("Registered storage type %s -> %s", type, entry.output)
        return entry

    @classmethod
    def get(cls, type: str, raise_on_error: bool = True) -> Optional[TypeEntry]:
        entry = cls._types.get(str(type))
        if entry is None and raise_on_error:
            raise UnknownTypeError(
                f"`{type}` does not exist inside the type registry.", storage_type=type
            )
        return entry

    @classmethod
    def remove(cls, type: str) -> None:
        with cls._lock:
            cls._types.pop(str(type), None)

    @classmethod
    def types(cls) -> dict[str, TypeEntry]:
        return dict(cls._types)


DEFAULT_TYPES = {
    "boolean": graphene.Boolean,
    "integer": graphene.Int,
    "decimal": graphene.Decimal,
    "string": graphene.String,
    "binary": graphene.String,
    "float": graphene.Float,
    "text": graphene.String,
    "uuid": graphene.UUID,
    "enum": graphene.String,
    "id": graphene.ID,
    "date": graphene.Date,
    "datetime": graphene.DateTime,
    "time": graphene.Time,
    "json": graphene.JSONString,
    "duration": graphene.String,
}

for _name, _graphql_type in DEFAULT_TYPES.items():
    TypeRegistry.add(_name, _graphql_type)
