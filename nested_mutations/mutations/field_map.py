"""
Field maps: the mapping between mutation inputs and model attributes.

A field map is declared once per mutation, top-down:

    author_map = FieldMap(Author)
    author_map.input("first_name").input("last_name")
    posts = author_map.has_many("posts", match_keys=["id"])
    posts.input("id").input("subject")

and frozen before the first mutation runs against it.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from django.db import models
from django.db.models.fields.related import ForeignObjectRel, ManyToManyField
from graphene.utils.str_converters import to_camel_case

from ..backing.model_source import ModelSource
from ..core.exceptions import StructuralError
from ..core.settings import MutationSettings

logger = logging.getLogger(__name__)

_UNSET = object()

INPUT_OPTIONS = frozenset({"name", "required", "description", "type", "default_value"})


class AssociationKind(enum.Enum):
    NONE = "none"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"


@dataclass(frozen=True)
class InputField:
    """One declared input: GraphQL name, model attribute and its GraphQL type."""

    name: str
    attribute: str
    graphql_type: Any
    required: bool = False
    description: Optional[str] = None
    default_value: Any = _UNSET

    @property
    def has_default(self) -> bool:
        return self.default_value is not _UNSET


def _kind_of_relation(relation: Any) -> AssociationKind:
    if isinstance(relation, ForeignObjectRel):
        return AssociationKind.HAS_ONE if relation.one_to_one else AssociationKind.HAS_MANY
    return AssociationKind.BELONGS_TO


class FieldMap:
    """
    Mapping rules for one record shape in the input tree.

    Attributes:
        model: Django model the inputs are applied to
        kind: Association kind relative to the parent map
        association: Relation name on the parent model (accessor name for
            reverse relations), ``None`` for the root map
        name: Input name of the association in the parent input
        match_keys: Attributes used to pair existing children with inputs;
            empty means positional matching
        identifier_field: Attribute used to re-link an existing record
        required: Whether the association input itself is required
        nested: Child field maps, in declaration order
    """

    def __init__(
        self,
        model: type[models.Model],
        *,
        kind: AssociationKind = AssociationKind.NONE,
        association: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        match_keys: Union[str, Sequence[str], None] = None,
        identifier_field: Optional[str] = None,
        required: bool = False,
        defaults: Optional[dict[str, Any]] = None,
        settings: Optional[MutationSettings] = None,
        depth: int = 0,
    ):
        self.model = model
        self.source = ModelSource.for_model(model)
        self.settings = settings or MutationSettings.from_settings()
        self.kind = kind
        self.association = association
        self.name = name or model.__name__
        self.description = description
        self.required = required
        self.defaults = dict(defaults or {})
        self.depth = depth
        self.relation = None
        self._frozen = False
        self._inputs: list[InputField] = []
        self._mapping: dict[str, str] = {}
        self._nested: list[FieldMap] = []

        if isinstance(match_keys, str):
            match_keys = [match_keys]
        self.match_keys: tuple[str, ...] = tuple(
            self.source.field(key).name for key in (match_keys or ())
        )
        self.identifier_field: Optional[str] = (
            self.source.field(identifier_field).name if identifier_field else None
        )

    def __repr__(self) -> str:
        return f"<FieldMap {self.name} ({self.kind.value}) {self.model.__name__}>"

    def __iter__(self):
        return iter(self._inputs)

    def __len__(self) -> int:
        return len(self._inputs)

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #
    @property
    def inputs(self) -> tuple[InputField, ...]:
        return tuple(self._inputs)

    @property
    def mapping(self) -> dict[str, str]:
        """Input name -> attribute, in declaration order."""
        return dict(self._mapping)

    @property
    def nested(self) -> tuple["FieldMap", ...]:
        return tuple(self._nested)

    @property
    def required_inputs(self) -> frozenset[str]:
        return frozenset(field.name for field in self._inputs if field.required)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def exists(self, name: str) -> bool:
        return str(name) in self._mapping

    def attribute_for(self, name: str) -> Optional[str]:
        return self._mapping.get(str(name))

    def input_name_for(self, attribute: str) -> Optional[str]:
        """First input name mapped to ``attribute``."""
        for input_name, mapped in self._mapping.items():
            if mapped == attribute:
                return input_name
        return None

    def nested_for_association(self, association: str) -> Optional["FieldMap"]:
        for nested in self._nested:
            if association in (nested.association, nested.relation_field_name):
                return nested
        return None

    def key_input_names(self) -> tuple[Optional[str], ...]:
        """Input names carrying each match key (``None`` if not an input)."""
        return tuple(self.input_name_for(key) for key in self.match_keys)

    @property
    def identifier_input_name(self) -> Optional[str]:
        if self.identifier_field is None:
            return None
        return self.input_name_for(self.identifier_field) or self.identifier_field

    @property
    def relation_field_name(self) -> Optional[str]:
        """Name of the Django relation (``None`` for the root map)."""
        if self.relation is None:
            return None
        return getattr(self.relation, "name", None)

    # ------------------------------------------------------------------ #
    # Declaration
    # ------------------------------------------------------------------ #
    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise StructuralError(
                f"Field map {self.name} is frozen and cannot be changed.",
                model_name=self.model.__name__,
            )

    def _default_input_name(self, field: models.Field) -> str:
        attribute = field.attname if field.is_relation else field.name
        return to_camel_case(attribute) if self.settings.auto_camelcase else attribute

    def input(
        self,
        attribute: str,
        *,
        name: Optional[str] = None,
        required: Optional[bool] = None,
        description: Optional[str] = None,
        type: Any = None,
        default_value: Any = _UNSET,
    ) -> "FieldMap":
        """
        Add a single input.

        Args:
            attribute: Model field name or column name
            name: GraphQL input name (camelCased attribute by default)
            required: Force the input to be required (inferred otherwise)
            description: Input description (column comment / help text by default)
            type: GraphQL input type (looked up from the column type by default)
            default_value: Optional GraphQL default value

        Returns:
            self, for chaining
        """
        self._ensure_mutable()
        field = self.source.field(attribute)
        input_name = name or self._default_input_name(field)
        if input_name in self._mapping:
            raise StructuralError(
                f"Input {input_name} is already declared on {self.name}",
                model_name=self.model.__name__,
            )
        if any(nested.name == input_name for nested in self._nested):
            raise StructuralError(
                f"Input {input_name} clashes with the association {input_name} on {self.name}",
                model_name=self.model.__name__,
            )

        if required is None:
            required = self.defaults.get("required", self.source.is_required(field.name))

        self._inputs.append(
            InputField(
                name=input_name,
                attribute=field.name,
                graphql_type=type or self.source.input_type(field.name),
                required=bool(required),
                description=description or self.source.description(field.name),
                default_value=default_value,
            )
        )
        self._mapping[input_name] = field.name
        return self

    def all_columns(
        self,
        exclude: Union[str, Iterable[str]] = (),
        options: Optional[dict[str, dict[str, Any]]] = None,
    ) -> "FieldMap":
        """
        Create inputs for every column of the model.

        Example:
            field_map.all_columns(exclude="id", options={"password_digest": {"name": "password"}})
        """
        excluded = {exclude} if isinstance(exclude, str) else set(exclude)
        options = options or {}
        for field in self.source.model._meta.concrete_fields:
            if field.name in excluded or field.attname in excluded:
                continue
            column_options = options.get(field.name) or options.get(field.attname) or {}
            unknown = set(column_options) - INPUT_OPTIONS
            if unknown:
                raise StructuralError(
                    f"Unknown input options for {field.name}: {', '.join(sorted(unknown))}",
                    model_name=self.model.__name__,
                )
            self.input(field.name, **column_options)
        return self

    def has_many(self, association: str, **options: Any) -> "FieldMap":
        """Declare a one-to-many association and return its field map."""
        return self._create_association(AssociationKind.HAS_MANY, association, **options)

    def has_one(self, association: str, **options: Any) -> "FieldMap":
        """Declare a reverse one-to-one association and return its field map."""
        return self._create_association(AssociationKind.HAS_ONE, association, **options)

    def belongs_to(self, association: str, **options: Any) -> "FieldMap":
        """Declare a forward foreign key association and return its field map."""
        return self._create_association(AssociationKind.BELONGS_TO, association, **options)

    def _create_association(
        self,
        kind: AssociationKind,
        association: str,
        *,
        name: Optional[str] = None,
        match_keys: Union[str, Sequence[str], None] = None,
        find_by: Union[str, Sequence[str], None] = None,
        identifier_field: Union[str, bool, None] = None,
        required: bool = False,
        description: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ) -> "FieldMap":
        self._ensure_mutable()
        model_name = self.model.__name__
        relation = self.source.relation(association)
        if relation is None:
            raise StructuralError(
                f"Could not find association `{association}` on `{model_name}`",
                model_name=model_name,
                association=association,
            )
        if relation.related_model is None or (
            not isinstance(relation, ForeignObjectRel) and relation.one_to_many
        ):
            raise StructuralError(
                f"Association `{association}` on `{model_name}` is polymorphic and not supported",
                model_name=model_name,
                association=association,
            )
        if relation.many_to_many or isinstance(relation, ManyToManyField):
            raise StructuralError(
                f"Association `{association}` on `{model_name}` is many-to-many and not supported",
                model_name=model_name,
                association=association,
            )
        actual = _kind_of_relation(relation)
        if actual is not kind:
            raise StructuralError(
                f"Association `{association}` on `{model_name}` expected to be "
                f"`{kind.value}`, but was `{actual.value}` instead",
                model_name=model_name,
                association=association,
            )
        if self.depth + 1 > self.settings.max_nested_depth:
            raise StructuralError(
                f"Association `{association}` on `{model_name}` exceeds the maximum "
                f"nesting depth of {self.settings.max_nested_depth}",
                model_name=model_name,
                association=association,
            )

        input_name = name or (to_camel_case(association) if self.settings.auto_camelcase else association)
        if input_name in self._mapping or any(n.name == input_name for n in self._nested):
            raise StructuralError(
                f"Input {input_name} is already declared on {self.name}",
                model_name=model_name,
                association=association,
            )

        if identifier_field is True:
            identifier_field = relation.related_model._meta.pk.name

        field_map = FieldMap(
            relation.related_model,
            kind=kind,
            association=association,
            name=input_name,
            description=description,
            match_keys=match_keys if match_keys is not None else find_by,
            identifier_field=identifier_field or None,
            required=required,
            defaults=defaults if defaults is not None else self.defaults,
            settings=self.settings,
            depth=self.depth + 1,
        )
        field_map.relation = relation
        self._nested.append(field_map)
        logger.debug("Declared %s %s.%s as %s", kind.value, model_name, association, input_name)
        return field_map

    def freeze(self) -> "FieldMap":
        """Make this map and every nested map read-only."""
        for nested in self._nested:
            nested.freeze()
        self._frozen = True
        return self
