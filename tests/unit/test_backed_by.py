"""
Unit tests for deriving graphene object types from backing sources.
"""

import graphene
import pytest

from nested_mutations.backing.backed_by import BackedBy
from nested_mutations.core.exceptions import StructuralError
from tests.models import Post

pytestmark = pytest.mark.unit


def test_requires_exactly_one_source():
    """BackedBy should require exactly one of a model or an index mapping."""
    with pytest.raises(StructuralError, match="either a `model` or `index`"):
        BackedBy()
    with pytest.raises(StructuralError, match="not both"):
        BackedBy(model=Post, index={"properties": {}})


def test_model_fields_are_camel_cased_and_typed():
    """Model-backed fields should be camel cased and typed from their columns."""
    backed = BackedBy(model=Post)
    field = backed.attribute("is_published")
    backed.attribute("subject", required=True)

    assert field.type is graphene.Boolean
    assert set(backed.fields) == {"isPublished", "subject"}
    assert isinstance(backed.fields["subject"].type, graphene.NonNull)
    assert backed.fields["subject"].description == "Short subject line"


def test_build_resolves_model_attributes():
    """Model-backed fields should resolve from record attributes."""
    backed = BackedBy(model=Post)
    backed.attribute("subject")
    backed.attribute("body", name="content")
    PostType = backed.build("BackedPost")

    class Query(graphene.ObjectType):
        post = graphene.Field(PostType)

        def resolve_post(root, info):
            return Post(subject="Hello", body="World")

    result = graphene.Schema(query=Query).execute("{ post { subject content } }")

    assert result.errors is None
    assert result.data == {"post": {"subject": "Hello", "content": "World"}}


def test_build_resolves_index_documents_by_key():
    """Index-backed fields should resolve from document keys."""
    backed = BackedBy(index={"properties": {"title": {"type": "text"}, "views": {"type": "long"}}})
    backed.all_fields()
    DocumentType = backed.build("BackedDocument")

    class Query(graphene.ObjectType):
        document = graphene.Field(DocumentType)

        def resolve_document(root, info):
            return {"title": "Indexed", "views": 3}

    result = graphene.Schema(query=Query).execute("{ document { title views } }")

    assert result.errors is None
    assert result.data == {"document": {"title": "Indexed", "views": 3}}


def test_all_fields_with_exclude_and_unknown_options():
    """all_fields should honour exclude and reject unknown options."""
    backed = BackedBy(model=Post).all_fields(exclude=["body", "author_id"])

    assert set(backed.fields) == {"id", "subject", "isPublished"}
    with pytest.raises(StructuralError, match="Unknown field options for subject"):
        BackedBy(model=Post).all_fields(options={"subject": {"sortable": True}})
