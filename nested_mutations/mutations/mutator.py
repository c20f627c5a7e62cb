"""
Mutator: graphene input types and mutation classes generated from a field map.
"""

import logging
from typing import Any, Callable, Optional

import graphene
from django.db import models
from graphql import GraphQLError

from ..core.exceptions import LookupFailure
from .errors import MutationValidationError
from .field_map import AssociationKind, FieldMap
from .runner import MutationRunner

logger = logging.getLogger(__name__)


def _capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


class Mutator:
    """
    Binds a frozen field map to graphene.

    Example:
        def configure(field_map):
            field_map.input("first_name").input("last_name")
            field_map.has_many("posts", match_keys="id").input("id").input("subject")

        create_author = Mutator.create("CreateAuthor", Author, configure)

        class Mutation(graphene.ObjectType):
            create_author = create_author.mutation(
                "author", AuthorType, lambda info, inputs: Author()
            ).Field()
    """

    def __init__(self, name: str, model: type[models.Model], field_map: FieldMap):
        self.name = name
        self.model = model
        self.field_map = field_map.freeze()
        self._input_type = None

    @classmethod
    def create(
        cls,
        name: str,
        model: type[models.Model],
        configure: Optional[Callable[[FieldMap], Any]] = None,
        **field_map_options: Any,
    ) -> "Mutator":
        field_map = FieldMap(model, name=name, **field_map_options)
        if configure is not None:
            configure(field_map)
        return cls(name, model, field_map)

    def input_type(self) -> type[graphene.InputObjectType]:
        if self._input_type is None:
            self._input_type = self._build_input_type(self.field_map, self.name)
        return self._input_type

    def _build_input_type(self, field_map: FieldMap, prefix: str) -> type[graphene.InputObjectType]:
        attrs: dict[str, Any] = {}
        for input_field in field_map.inputs:
            graphql_type = input_field.graphql_type
            if input_field.required:
                graphql_type = graphene.NonNull(graphql_type)
            options = {"description": input_field.description}
            if input_field.has_default:
                options["default_value"] = input_field.default_value
            attrs[input_field.name] = graphene.InputField(graphql_type, **options)

        for nested in field_map.nested:
            nested_type: Any = self._build_input_type(nested, prefix + _capitalize(nested.name))
            if nested.kind is AssociationKind.HAS_MANY:
                nested_type = graphene.List(graphene.NonNull(nested_type))
            if nested.required:
                nested_type = graphene.NonNull(nested_type)
            attrs[nested.name] = graphene.InputField(nested_type, description=nested.description)

        attrs["Meta"] = type("Meta", (), {"description": field_map.description})
        return type(f"{prefix}Input", (graphene.InputObjectType,), attrs)

    def runner(self, record: models.Model, inputs: Any) -> MutationRunner:
        return MutationRunner(record, inputs, self.field_map)

    def mutation(
        self,
        return_field: str,
        output_type: Any,
        get_record: Callable[[Any, dict[str, Any]], models.Model],
        description: Optional[str] = None,
    ) -> type[graphene.Mutation]:
        """
        Build a ``graphene.Mutation`` taking a single ``input`` argument.

        Args:
            return_field: Name of the payload field holding the saved record
            output_type: Object type of the saved record
            get_record: ``(info, inputs) -> record`` loading or building the root record
            description: Mutation description

        Returns:
            The mutation class; mount it with ``.Field()``
        """
        mutator = self
        input_type = self.input_type()

        def mutate(root, info, input):
            runner = mutator.runner(get_record(info, input), input)
            try:
                record = runner.run()
            except MutationValidationError as exc:
                raise GraphQLError(
                    exc.message, extensions={"code": "VALIDATION_ERROR", **exc.to_dict()}
                ) from exc
            except LookupFailure as exc:
                raise GraphQLError(
                    str(exc),
                    extensions={
                        "code": "NOT_FOUND",
                        "modelType": exc.model_name,
                        "attribute": exc.field,
                        "value": exc.value,
                    },
                ) from exc
            logger.info("%s saved %s %s", mutator.name, type(record).__name__, record.pk)
            return mutation_class(**{return_field: record})

        attrs = {
            "Arguments": type("Arguments", (), {"input": graphene.NonNull(input_type)}),
            "Meta": type("Meta", (), {"name": f"{self.name}Payload", "description": description}),
            return_field: graphene.Field(output_type),
            "mutate": staticmethod(mutate),
        }
        mutation_class = type(self.name, (graphene.Mutation,), attrs)
        return mutation_class
