"""
PersistenceCoordinator: commits every record touched by a mutation in one
transaction.
"""

import logging
from typing import Iterable

from django.db import DatabaseError, models, transaction

from ..core.exceptions import RecordInvalid, StorageFailure
from .results import Change
from .store import RecordStore, Snapshot

logger = logging.getLogger(__name__)


def unique_records(changes: Iterable[Change]) -> list[models.Model]:
    """Records referenced by ``changes``, deduplicated by identity, first-referenced order."""
    seen: set[int] = set()
    records = []
    for change in changes:
        if id(change.record) in seen:
            continue
        seen.add(id(change.record))
        records.append(change.record)
    return records


class PersistenceCoordinator:
    def __init__(self, store: RecordStore, savepoint: bool = True):
        self.store = store
        self.savepoint = savepoint

    def commit(self, changes: Iterable[Change]) -> list[models.Model]:
        """
        Validate then write every touched record atomically.

        Raises:
            RecordInvalid: if any record to be saved fails validation;
                nothing is written
            StorageFailure: if the database rejects a write; every write
                is rolled back

        Returns:
            The saved (non-destroyed) records, in first-referenced order
        """
        records = unique_records(changes)
        kept = [record for record in records if not self.store.is_marked_for_destruction(record)]

        invalid = [record for record in kept if self.store.validate(record)]
        if invalid:
            logger.warning(
                "Validation failed for %s record(s): %s",
                len(invalid),
                ", ".join(sorted({self.store.type_name(record) for record in invalid})),
            )
            raise RecordInvalid(invalid)

        snapshots: dict[int, tuple[models.Model, Snapshot]] = {}
        saved: list[models.Model] = []
        try:
            with transaction.atomic(savepoint=self.savepoint):
                for record in records:
                    if self.store.is_marked_for_destruction(record):
                        self._remember(snapshots, record)
                        self.store.delete(record)
                    else:
                        self._save(record, snapshots, saved)
        except DatabaseError as exc:
            self._rollback(snapshots)
            model_name = self._failing_model(snapshots)
            logger.warning("Aborted transaction while saving %s: %s", model_name, exc)
            raise StorageFailure(str(exc), model_name=model_name) from exc
        except Exception:
            self._rollback(snapshots)
            raise

        logger.info(
            "Committed %s record(s), destroyed %s", len(saved), len(records) - len(kept)
        )
        return saved

    def _remember(self, snapshots: dict, record: models.Model) -> None:
        if id(record) not in snapshots:
            snapshots[id(record)] = (record, self.store.snapshot(record))

    def _save(self, record: models.Model, snapshots: dict, saved: list) -> None:
        if id(record) in snapshots:
            return
        self._remember(snapshots, record)
        # Records this one points at must have a primary key first.
        for target in self.store.pending_targets(record):
            if not self.store.is_marked_for_destruction(target):
                self._save(target, snapshots, saved)
        self.store.save(record)
        saved.append(record)

    def _rollback(self, snapshots: dict) -> None:
        for record, snapshot in snapshots.values():
            self.store.restore(record, snapshot)

    def _failing_model(self, snapshots: dict):
        if not snapshots:
            return None
        record, _ = list(snapshots.values())[-1]
        return self.store.type_name(record)
