"""
IndexSource implementation.

Normalises a search-index mapping (Elasticsearch style) so backed types can
derive fields from index documents the same way they do from model columns.
"""

from typing import Any, Optional

from ..core.exceptions import StructuralError
from ..core.type_registry import TypeRegistry

STRING_TYPES = frozenset({"keyword", "text"})
INTEGER_TYPES = frozenset({"long", "integer", "short"})
FLOAT_TYPES = frozenset({"double", "float", "half_float", "scaled_float"})


def normalize_mapping(mapping: dict[str, Any]) -> tuple[dict[str, str], dict[str, dict]]:
    """
    Split an index mapping into scalar fields and nested objects.

    Returns:
        ``(fields, nested)`` where ``fields`` maps field names to storage
        type names and ``nested`` maps object names to
        ``{"type": "object", "fields": ..., "nested": ...}``.
    """
    properties = mapping.get("properties", mapping)
    fields: dict[str, str] = {}
    nested: dict[str, dict] = {}
    for name, attributes in properties.items():
        field_type = (attributes or {}).get("type", "object" if "properties" in (attributes or {}) else None)
        if field_type == "object":
            child_fields, child_nested = normalize_mapping(attributes)
            nested[name] = {"type": "object", "fields": child_fields, "nested": child_nested}
            continue
        if field_type in STRING_TYPES:
            fields[name] = "string"
        elif field_type in INTEGER_TYPES:
            fields[name] = "integer"
        elif field_type in FLOAT_TYPES:
            fields[name] = "float"
        else:
            fields[name] = str(field_type)
    return fields, nested


class IndexSource:
    """Field lookups for one search-index document type."""

    def __init__(self, mapping: dict[str, Any], index_name: Optional[str] = None):
        if not isinstance(mapping, dict):
            raise StructuralError(f"{type(self).__name__} expects a mapping dict, got {type(mapping).__name__}")
        if index_name is None and "properties" not in mapping:
            index_name = next(iter(mapping), None)
        self.index_name = index_name
        document = mapping.get(index_name, mapping) if index_name else mapping
        self.fields, self.nested = normalize_mapping(document)

    @property
    def name(self) -> str:
        return str(self.index_name or "index")

    def storage_type(self, name: str) -> str:
        try:
            return self.fields[str(name)]
        except KeyError:
            raise StructuralError(
                f"The field {name} was not found on the index {self.name}.",
                model_name=self.name,
            ) from None

    def type(self, name: str) -> Any:
        return TypeRegistry.get(self.storage_type(name)).output

    def input_type(self, name: str) -> Any:
        return TypeRegistry.get(self.storage_type(name)).input

    def description(self, name: str) -> Optional[str]:
        # Index mappings carry no field comments.
        return None

    def exists(self, name: str) -> bool:
        return str(name) in self.fields

    def all(self) -> list[str]:
        return list(self.fields)
