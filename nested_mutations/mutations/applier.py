"""
ChangeApplier: applies an input tree to a record graph and records every
change it makes.
"""

import logging
from typing import Any

from django.db import models

from .field_map import AssociationKind, FieldMap
from .matcher import Matcher
from .results import Change, ChangeAction, InputPath, MatchAction, MatchResult
from .store import RecordStore

logger = logging.getLogger(__name__)


class ChangeApplier:
    def __init__(self, store: RecordStore, matcher: Matcher, log_changes: bool = False):
        self.store = store
        self.matcher = matcher
        self.log_changes = log_changes

    def apply(
        self,
        record: models.Model,
        fragment: dict[str, Any],
        field_map: FieldMap,
        path: InputPath = (),
    ) -> list[Change]:
        """
        Apply ``fragment`` to ``record`` and its nested associations.

        Returns:
            Changes in traversal order, with input paths qualified from the
            root of the input tree
        """
        changes = self._apply_attributes(record, fragment, field_map, path)
        for nested in field_map.nested:
            if nested.name not in fragment:
                continue
            association_path = path + (nested.name,)
            results = self.matcher.match(record, nested, fragment[nested.name])
            for result in results:
                changes.extend(self._apply_result(record, nested, result, association_path))
        return changes

    def _apply_attributes(
        self,
        record: models.Model,
        fragment: dict[str, Any],
        field_map: FieldMap,
        path: InputPath,
    ) -> list[Change]:
        action = ChangeAction.CREATE if self.store.is_new(record) else ChangeAction.UPDATE
        changes = []
        for input_name, attribute in field_map.mapping.items():
            if input_name not in fragment:
                continue
            value = self.store.coerce(record, attribute, fragment[input_name])
            current = self.store.get_attribute(record, attribute)
            if current == value:
                continue
            self.store.set_attribute(record, attribute, value)
            change = Change(record, attribute, path + (input_name,), action)
            if self.log_changes:
                logger.debug("Change: %s", change.describe())
            changes.append(change)
        return changes

    def _apply_result(
        self,
        parent: models.Model,
        field_map: FieldMap,
        result: MatchResult,
        association_path: InputPath,
    ) -> list[Change]:
        child_path = association_path
        if field_map.kind is AssociationKind.HAS_MANY and result.locator is not None:
            child_path = association_path + (result.locator,)

        changes = []
        if result.action is MatchAction.DESTROY:
            if field_map.kind is AssociationKind.BELONGS_TO:
                # Clear the owner's foreign key before the target is deleted.
                changes.append(self._unlink_owner(parent, field_map, association_path))
            changes.append(Change(result.record, None, child_path, ChangeAction.DESTROY))
            return changes
        if result.action is MatchAction.CREATE:
            changes.append(Change(result.record, None, child_path, ChangeAction.CREATE))
        elif result.action is MatchAction.RELINK:
            changes.append(self._relink_change(parent, field_map, result, child_path))

        if field_map.kind is AssociationKind.BELONGS_TO and result.action is MatchAction.CREATE:
            # The owner's foreign key is filled in from the new record on save.
            owner_action = ChangeAction.CREATE if self.store.is_new(parent) else ChangeAction.UPDATE
            changes.append(Change(parent, field_map.relation.name, association_path, owner_action))

        if result.recurses:
            changes.extend(self.apply(result.record, result.fragment, field_map, child_path))
        return changes

    def _unlink_owner(
        self, parent: models.Model, field_map: FieldMap, association_path: InputPath
    ) -> Change:
        attribute = field_map.relation.name
        self.store.set_attribute(parent, attribute, None)
        action = ChangeAction.CREATE if self.store.is_new(parent) else ChangeAction.UPDATE
        return Change(parent, attribute, association_path, action)

    def _relink_change(
        self,
        parent: models.Model,
        field_map: FieldMap,
        result: MatchResult,
        child_path: InputPath,
    ) -> Change:
        if field_map.kind is AssociationKind.BELONGS_TO:
            owner, attribute = parent, field_map.relation.name
        else:
            owner, attribute = result.record, field_map.relation.field.name
        identifier_path = child_path + (field_map.identifier_input_name,)
        action = ChangeAction.CREATE if self.store.is_new(owner) else ChangeAction.UPDATE
        return Change(owner, attribute, identifier_path, action)
