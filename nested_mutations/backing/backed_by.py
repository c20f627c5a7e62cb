"""
Field derivation for GraphQL object types backed by a model or an index.

Example:
    backed = BackedBy(model=Author)
    backed.attribute("id")
    backed.attribute("first_name")
    backed.attribute("password_digest", name="password")
    AuthorType = backed.build("Author", extra={"posts": graphene.List(PostType)})
"""

import logging
from functools import partial
from typing import Any, Callable, Iterable, Optional

import graphene
from graphene.types.resolver import attr_resolver, dict_resolver
from graphene.utils.str_converters import to_camel_case

from ..core.exceptions import StructuralError
from .index_source import IndexSource
from .model_source import ModelSource

logger = logging.getLogger(__name__)

FIELD_OPTIONS = frozenset(
    {"name", "type", "required", "description", "deprecation_reason", "resolver"}
)


class BackedBy:
    """Collects graphene fields derived from a backing source."""

    def __init__(self, *, model=None, index=None, index_name: Optional[str] = None):
        if model is not None and index is not None:
            raise StructuralError("Specify either a `model` or an `index`, not both.")
        if model is not None:
            self.source = ModelSource.for_model(model)
        elif index is not None:
            self.source = index if isinstance(index, IndexSource) else IndexSource(index, index_name)
        else:
            raise StructuralError("Must specify either a `model` or `index` argument.")
        self._fields: dict[str, graphene.Field] = {}

    @property
    def is_model(self) -> bool:
        return isinstance(self.source, ModelSource)

    @property
    def fields(self) -> dict[str, graphene.Field]:
        return dict(self._fields)

    def attribute(
        self,
        attribute: str,
        *,
        name: Optional[str] = None,
        type: Any = None,
        required: bool = False,
        description: Optional[str] = None,
        deprecation_reason: Optional[str] = None,
        resolver: Optional[Callable] = None,
    ) -> graphene.Field:
        """
        Declare one GraphQL field for a backing attribute.

        The field name defaults to the camelCased attribute and the type to
        the registered GraphQL type of the column or index field.
        """
        attribute = str(attribute)
        field_name = name or to_camel_case(attribute)
        field_type = type or self.source.type(attribute)
        if required:
            field_type = graphene.NonNull(field_type)

        if resolver is None:
            base_resolver = attr_resolver if self.is_model else dict_resolver
            resolver = partial(base_resolver, attribute, None)

        field = graphene.Field(
            field_type,
            name=field_name,
            description=description or self.source.description(attribute),
            deprecation_reason=deprecation_reason,
            resolver=resolver,
        )
        self._fields[field_name] = field
        return field

    def all_fields(
        self,
        exclude: Iterable[str] = (),
        options: Optional[dict[str, dict[str, Any]]] = None,
    ) -> "BackedBy":
        """Declare a field for every column (or index field) not excluded."""
        excluded = {exclude} if isinstance(exclude, str) else {str(e) for e in exclude}
        options = options or {}
        for column in self.source.all():
            if column in excluded:
                continue
            column_options = options.get(column, {})
            unknown = set(column_options) - FIELD_OPTIONS
            if unknown:
                raise StructuralError(
                    f"Unknown field options for {column}: {', '.join(sorted(unknown))}",
                    model_name=self.source.name,
                )
            self.attribute(column, **column_options)
        return self

    def build(
        self,
        type_name: str,
        bases: tuple = (graphene.ObjectType,),
        extra: Optional[dict[str, Any]] = None,
    ) -> type:
        """Create the object type holding every declared field."""
        attrs: dict[str, Any] = dict(self._fields)
        attrs.update(extra or {})
        logger.debug("Building %s with fields %s", type_name, sorted(self._fields))
        return type(type_name, bases, attrs)
