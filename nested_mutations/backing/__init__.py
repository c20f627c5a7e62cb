"""Backing sources and GraphQL field derivation."""

from .backed_by import BackedBy
from .index_source import IndexSource, normalize_mapping
from .model_source import ModelSource

__all__ = ["BackedBy", "IndexSource", "ModelSource", "normalize_mapping"]
