"""
Unit tests for settings loading.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.test import override_settings

from nested_mutations.core.settings import MutationSettings
from nested_mutations.defaults import LIBRARY_DEFAULTS, merge_settings

pytestmark = pytest.mark.unit


def test_merge_settings_is_deep_and_does_not_mutate_inputs():
    """merge_settings should merge nested dicts without mutating its inputs."""
    base = {"mutation_settings": {"auto_camelcase": True, "max_nested_depth": 10}}
    override = {"mutation_settings": {"max_nested_depth": 3}}

    merged = merge_settings(base, override)

    assert merged == {"mutation_settings": {"auto_camelcase": True, "max_nested_depth": 3}}
    assert base["mutation_settings"]["max_nested_depth"] == 10


def test_project_settings_override_library_defaults():
    """Project settings should override library defaults."""
    # The test settings lower the depth limit to 5.
    settings = MutationSettings.from_settings()

    assert settings.max_nested_depth == 5
    assert settings.validation_message == LIBRARY_DEFAULTS["mutation_settings"]["validation_message"]


def test_testing_environment_enables_change_logging():
    """The testing environment should enable change logging."""
    assert MutationSettings.from_settings().log_changes is True


@override_settings(ENVIRONMENT="production")
def test_production_environment_keeps_library_defaults():
    """The production environment should keep library defaults."""
    assert MutationSettings.from_settings().log_changes is False


def test_explicit_overrides_win_and_unknown_keys_are_ignored():
    """Explicit overrides should win and unknown keys should be ignored."""
    settings = MutationSettings.from_settings(echo_input_values=False, colour="red")

    assert settings.echo_input_values is False
    assert not hasattr(settings, "colour")


@override_settings(NESTED_MUTATIONS={"mutation_settings": {"max_nested_depth": 0}})
def test_invalid_depth_is_rejected():
    """A non-positive depth limit should be rejected."""
    with pytest.raises(ImproperlyConfigured, match="max_nested_depth"):
        MutationSettings.from_settings()


@override_settings(NESTED_MUTATIONS=["not", "a", "dict"])
def test_settings_must_be_a_dict():
    """A non-dict NESTED_MUTATIONS setting should be rejected."""
    with pytest.raises(ImproperlyConfigured, match="NESTED_MUTATIONS must be a dict"):
        MutationSettings.from_settings()
