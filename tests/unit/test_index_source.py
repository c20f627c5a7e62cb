"""
Unit tests for search-index mapping normalisation.
"""

import graphene
import pytest

from nested_mutations.backing.index_source import IndexSource, normalize_mapping
from nested_mutations.core.exceptions import StructuralError

pytestmark = pytest.mark.unit

POSTS_MAPPING = {
    "posts": {
        "properties": {
            "subject": {"type": "text"},
            "slug": {"type": "keyword"},
            "views": {"type": "long"},
            "score": {"type": "half_float"},
            "published": {"type": "boolean"},
            "author": {
                "type": "object",
                "properties": {
                    "name": {"type": "keyword"},
                    "age": {"type": "short"},
                },
            },
        }
    }
}


def test_normalize_mapping_groups_scalar_types():
    """normalize_mapping should group scalar types per field."""
    fields, nested = normalize_mapping(POSTS_MAPPING["posts"])

    assert fields == {
        "subject": "string",
        "slug": "string",
        "views": "integer",
        "score": "float",
        "published": "boolean",
    }
    assert nested == {
        "author": {
            "type": "object",
            "fields": {"name": "string", "age": "integer"},
            "nested": {},
        }
    }


def test_index_name_is_detected_from_the_mapping():
    """The index name should be read from the mapping."""
    source = IndexSource(POSTS_MAPPING)

    assert source.name == "posts"
    assert source.all() == ["subject", "slug", "views", "score", "published"]
    assert source.exists("views")
    assert not source.exists("author")


def test_types_come_from_the_registry():
    """Field types should be resolved through the type registry."""
    source = IndexSource(POSTS_MAPPING)

    assert source.type("views") is graphene.Int
    assert source.input_type("subject") is graphene.String
    assert source.description("subject") is None


def test_unknown_field_raises():
    """An unknown index field should raise StructuralError."""
    source = IndexSource({"properties": {"title": {"type": "text"}}}, index_name="articles")

    with pytest.raises(StructuralError, match="The field body was not found on the index articles."):
        source.storage_type("body")


def test_non_dict_mapping_raises():
    """A mapping that is not a dict should be rejected."""
    with pytest.raises(StructuralError, match="expects a mapping dict"):
        IndexSource(["subject"])
