"""
MutationSettings implementation and settings loading helpers.
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

from ..defaults import (
    DEFAULT_VALIDATION_MESSAGE,
    LIBRARY_DEFAULTS,
    SETTINGS_NAME,
    get_environment_defaults,
    merge_settings,
)


def _get_library_defaults() -> dict[str, Any]:
    """Get library defaults merged with the current environment overrides."""
    env = getattr(django_settings, "ENVIRONMENT", None)
    if not env:
        env = "development" if getattr(django_settings, "DEBUG", False) else "production"
    return merge_settings(LIBRARY_DEFAULTS, get_environment_defaults(env))


def _get_global_settings() -> dict[str, Any]:
    """Get project overrides from Django settings."""
    config = getattr(django_settings, SETTINGS_NAME, None) or {}
    if not isinstance(config, dict):
        raise ImproperlyConfigured(f"{SETTINGS_NAME} must be a dict, got {type(config).__name__}")
    return config


@dataclass
class MutationSettings:
    """Settings for controlling nested mutation declaration and execution."""

    auto_camelcase: bool = True
    max_nested_depth: int = 10
    validation_message: str = DEFAULT_VALIDATION_MESSAGE
    echo_input_values: bool = True
    log_changes: bool = False
    transaction_savepoint: bool = True

    def __post_init__(self):
        if not isinstance(self.max_nested_depth, int) or self.max_nested_depth < 1:
            raise ImproperlyConfigured(
                f"max_nested_depth must be a positive integer, got {self.max_nested_depth!r}"
            )
        if not self.validation_message:
            raise ImproperlyConfigured("validation_message cannot be empty")

    @classmethod
    def from_settings(cls, **overrides: Any) -> "MutationSettings":
        defaults = _get_library_defaults().get("mutation_settings", {})
        global_settings = _get_global_settings().get("mutation_settings", {})
        merged = merge_settings(defaults, global_settings, overrides)
        valid_fields = set(cls.__dataclass_fields__.keys())
        return cls(**{k: v for k, v in merged.items() if k in valid_fields})
