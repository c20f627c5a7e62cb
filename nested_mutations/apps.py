"""
Django app configuration for nested-mutations.
"""

import logging

from django.apps import AppConfig as BaseAppConfig

logger = logging.getLogger(__name__)


class AppConfig(BaseAppConfig):
    """Django app configuration for nested-mutations."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "nested_mutations"
    verbose_name = "Nested Mutations"
    label = "nested_mutations"

    def ready(self):
        """Load the effective settings so misconfiguration fails at startup."""
        from .core.settings import MutationSettings

        settings = MutationSettings.from_settings()
        logger.info(
            "Nested mutations ready (max_nested_depth=%s, auto_camelcase=%s, log_changes=%s)",
            settings.max_nested_depth,
            settings.auto_camelcase,
            settings.log_changes,
        )
