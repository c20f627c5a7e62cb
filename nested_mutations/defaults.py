"""
Default configuration for the nested-mutations library.

The goal of this module is to expose a single source of truth for every
setting that the library actually consumes. Each section mirrors one of the
dataclasses defined in ``nested_mutations.core.settings``.
"""

from __future__ import annotations

from typing import Any

LIBRARY_VERSION = "1.0.0"

# Name of the Django setting holding project overrides.
SETTINGS_NAME = "NESTED_MUTATIONS"

DEFAULT_VALIDATION_MESSAGE = "Some of your changes could not be saved."


# --------------------------------------------------------------------------- #
# Library-wide defaults (grouped by feature area)
# --------------------------------------------------------------------------- #
LIBRARY_DEFAULTS: dict[str, Any] = {
    "mutation_settings": {
        "auto_camelcase": True,
        "max_nested_depth": 10,
        "validation_message": DEFAULT_VALIDATION_MESSAGE,
        "echo_input_values": True,
        "log_changes": False,
        "transaction_savepoint": True,
    },
}

ENVIRONMENT_DEFAULTS: dict[str, dict[str, Any]] = {
    "development": {
        "mutation_settings": {
            "log_changes": True,
        }
    },
    "testing": {
        "mutation_settings": {
            "log_changes": True,
        }
    },
    "production": {},
}


# --------------------------------------------------------------------------- #
# Helper functions
# --------------------------------------------------------------------------- #
def get_environment_defaults(environment: str) -> dict[str, Any]:
    """Return environment-specific overrides."""
    return ENVIRONMENT_DEFAULTS.get(environment, {}).copy()


def merge_settings(*settings_dicts: dict[str, Any]) -> dict[str, Any]:
    """
    Merge multiple settings dictionaries with deep merging for nested dicts.
    Later dictionaries override earlier ones.
    """
    result: dict[str, Any] = {}
    for settings_dict in settings_dicts:
        for key, value in settings_dict.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = merge_settings(result[key], value)
            else:
                result[key] = value
    return result
