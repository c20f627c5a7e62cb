"""
MutationRunner: apply, validate and save one nested mutation.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from django.db import models

from ..core.exceptions import RecordInvalid
from ..core.settings import MutationSettings
from .applier import ChangeApplier
from .errors import MutationValidationError
from .field_map import FieldMap
from .matcher import Matcher
from .persistence import PersistenceCoordinator, unique_records
from .results import Change, ChangeAction
from .store import RecordStore
from .validation import ErrorAccumulator, Validator

logger = logging.getLogger(__name__)


def normalize_inputs(value: Any) -> Any:
    """Convert graphene input objects and other mappings to plain dicts and lists."""
    if isinstance(value, Mapping):
        return {str(key): normalize_inputs(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_inputs(item) for item in value]
    return value


class MutationRunner:
    """
    Runs one mutation of ``inputs`` against ``record``.

    A runner (and the store it owns) is used for exactly one invocation.

    Example:
        runner = MutationRunner(author, {"firstName": "Ada"}, author_map)
        runner.run()
    """

    def __init__(
        self,
        record: models.Model,
        inputs: Any,
        field_map: FieldMap,
        *,
        store: Optional[RecordStore] = None,
        settings: Optional[MutationSettings] = None,
    ):
        self.record = record
        self.inputs = normalize_inputs(inputs or {})
        self.field_map = field_map
        self.settings = settings or field_map.settings
        self.store = store or RecordStore()
        self.matcher = Matcher(self.store, log_changes=self.settings.log_changes)
        self.applier = ChangeApplier(self.store, self.matcher, log_changes=self.settings.log_changes)
        self._changes: Optional[list[Change]] = None

    @property
    def changes(self) -> list[Change]:
        return list(self.apply_changes())

    def apply_changes(self) -> list[Change]:
        """Apply the inputs in memory once and return the change log."""
        if self._changes is None:
            changes = []
            if self.store.is_new(self.record):
                changes.append(Change(self.record, None, (), ChangeAction.CREATE))
            changes.extend(self.applier.apply(self.record, self.inputs, self.field_map))
            self._changes = changes
            logger.debug(
                "Applied %s change(s) to %s", len(changes), self.store.type_name(self.record)
            )
        return self._changes

    def changed_records(self) -> list[models.Model]:
        return [
            record
            for record in unique_records(self.apply_changes())
            if not self.store.is_marked_for_destruction(record)
        ]

    def validate(self) -> ErrorAccumulator:
        validator = Validator(
            self.record,
            self.inputs,
            self.field_map,
            self.apply_changes(),
            self.store,
            self.matcher,
        )
        return validator.validate()

    def validation_error(self, errors: ErrorAccumulator) -> MutationValidationError:
        return MutationValidationError(
            errors,
            values=self.inputs if self.settings.echo_input_values else None,
            message=self.settings.validation_message,
            model_name=self.store.type_name(self.record),
        )

    def validate_or_raise(self) -> None:
        errors = self.validate()
        if errors:
            raise self.validation_error(errors)

    def save(self) -> list[models.Model]:
        """
        Persist every touched record.

        Raises:
            MutationValidationError: if any touched record is invalid
            LookupFailure: if a re-association target does not exist
            StorageFailure: if the database rejects a write
        """
        changes = self.apply_changes()
        coordinator = PersistenceCoordinator(self.store, savepoint=self.settings.transaction_savepoint)
        try:
            return coordinator.commit(changes)
        except RecordInvalid as exc:
            errors = self.validate()
            if not errors:
                raise
            raise self.validation_error(errors) from exc

    def run(self) -> models.Model:
        self.save()
        return self.record
