"""
Nested GraphQL mutations for Django models.

Declares field maps between graphene inputs and model attributes, then
applies nested inputs to a record graph, saves it atomically and reports
validation errors at the input path that produced them.
"""

from .defaults import LIBRARY_VERSION as __version__

__all__ = ["__version__"]
