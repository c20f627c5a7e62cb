"""
Matcher: pairs existing child records with input fragments for one
association level.
"""

import logging
from typing import Any, Optional

from django.db import models

from ..core.exceptions import StructuralError
from .field_map import AssociationKind, FieldMap
from .results import MatchAction, MatchResult
from .store import RecordStore

logger = logging.getLogger(__name__)


class Matcher:
    """
    Computes the MatchResults for one association of one parent record.

    ``match`` has side effects on the store: new children are built and
    linked, re-associated records are linked and removed children are
    marked for destruction. Results are memoised per ``(parent, field_map)``
    so the path resolver can replay the pairings used while applying.
    """

    def __init__(self, store: RecordStore, log_changes: bool = False):
        self.store = store
        self.log_changes = log_changes
        self._memo: dict[tuple[int, int], tuple[Any, list[MatchResult]]] = {}

    def match(
        self, parent: models.Model, field_map: FieldMap, fragment: Any
    ) -> list[MatchResult]:
        results = self._compute(parent, field_map, fragment, dry=False)
        self._memo[(id(parent), id(field_map))] = (parent, results)
        if self.log_changes:
            logger.debug(
                "Matched %s.%s: %s",
                type(parent).__name__,
                field_map.association,
                [(result.action.value, result.locator) for result in results],
            )
        return results

    def pairings(
        self, parent: models.Model, field_map: FieldMap, fragment: Any
    ) -> list[MatchResult]:
        """
        Pairings computed by ``match`` for this level, or a side-effect free
        match when the level was never applied.
        """
        memo = self._memo.get((id(parent), id(field_map)))
        if memo is not None:
            return memo[1]
        return self._compute(parent, field_map, fragment, dry=True)

    def _compute(
        self, parent: models.Model, field_map: FieldMap, fragment: Any, dry: bool
    ) -> list[MatchResult]:
        kind = field_map.kind
        if kind is AssociationKind.HAS_ONE or kind is AssociationKind.BELONGS_TO:
            return self._match_one(parent, field_map, fragment, dry)
        if kind is AssociationKind.HAS_MANY:
            fragments = list(fragment or [])
            if field_map.match_keys:
                return self._match_keyed(parent, field_map, fragments, dry)
            return self._match_positional(parent, field_map, fragments, dry)
        raise StructuralError(
            f"Cannot match records for association kind `{kind.value}`",
            model_name=field_map.model.__name__,
            association=field_map.association,
        )

    # ------------------------------------------------------------------ #
    # Shared steps
    # ------------------------------------------------------------------ #
    def _destroy(self, child: models.Model, locator: Optional[int], dry: bool) -> MatchResult:
        if not dry:
            self.store.mark_for_destruction(child)
        return MatchResult(child, None, locator, MatchAction.DESTROY)

    def _attach(
        self,
        parent: models.Model,
        field_map: FieldMap,
        fragment: dict[str, Any],
        locator: Optional[int],
        dry: bool,
    ) -> MatchResult:
        """Re-link an existing record by identifier, or build a new one."""
        identifier_input = field_map.identifier_input_name
        if identifier_input is not None and fragment.get(identifier_input) is not None:
            lookup = self.store.find(
                field_map.model, field_map.identifier_field, fragment[identifier_input]
            )
            record = lookup.unwrap()
            if not dry:
                self.store.link(parent, field_map, record)
            return MatchResult(record, fragment, locator, MatchAction.RELINK)

        record = field_map.model() if dry else self.store.build_child(parent, field_map)
        return MatchResult(record, fragment, locator, MatchAction.CREATE)

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #
    def _match_one(
        self, parent: models.Model, field_map: FieldMap, fragment: Any, dry: bool
    ) -> list[MatchResult]:
        child = self.store.children(parent, field_map)
        if child is not None and fragment is None:
            return [self._destroy(child, None, dry)]
        if child is None and fragment is not None:
            return [self._attach(parent, field_map, fragment, None, dry)]
        if child is not None:
            return [MatchResult(child, fragment, None, MatchAction.UPDATE)]
        return []

    def _match_positional(
        self, parent: models.Model, field_map: FieldMap, fragments: list, dry: bool
    ) -> list[MatchResult]:
        existing = list(self.store.children(parent, field_map))
        results = []
        for index in range(max(len(existing), len(fragments))):
            child = existing[index] if index < len(existing) else None
            fragment = fragments[index] if index < len(fragments) else None
            if child is not None and fragment is None:
                results.append(self._destroy(child, index, dry))
            elif child is None and fragment is not None:
                results.append(self._attach(parent, field_map, fragment, index, dry))
            elif child is not None:
                results.append(MatchResult(child, fragment, index, MatchAction.UPDATE))
        return results

    def _match_keyed(
        self, parent: models.Model, field_map: FieldMap, fragments: list, dry: bool
    ) -> list[MatchResult]:
        existing = list(self.store.children(parent, field_map))

        # First fragment carrying a key claims it; all-None keys never match.
        by_key: dict[tuple, int] = {}
        for index, fragment in enumerate(fragments):
            if fragment is None:
                continue
            key = self.store.input_key(fragment, field_map)
            if all(value is None for value in key) or key in by_key:
                continue
            by_key[key] = index

        owners: dict[int, int] = {}
        for child in existing:
            index = by_key.pop(self.store.key_for(child, field_map.match_keys), None)
            if index is not None:
                owners[id(child)] = index
        self._claim_by_identifier(field_map, fragments, existing, owners)

        results = []
        claimed = set(owners.values())
        for child in existing:
            index = owners.get(id(child))
            if index is None:
                results.append(self._destroy(child, None, dry))
            else:
                results.append(MatchResult(child, fragments[index], index, MatchAction.UPDATE))

        for index, fragment in enumerate(fragments):
            if index in claimed or fragment is None:
                continue
            results.append(self._attach(parent, field_map, fragment, index, dry))
        return results

    def _claim_by_identifier(
        self,
        field_map: FieldMap,
        fragments: list,
        existing: list[models.Model],
        owners: dict[int, int],
    ) -> None:
        """
        Give an unmatched fragment the existing child its identifier names,
        so the row is updated in place instead of destroyed and re-linked.
        """
        identifier_input = field_map.identifier_input_name
        if identifier_input is None:
            return
        claimed = set(owners.values())
        for index, fragment in enumerate(fragments):
            if index in claimed or fragment is None or fragment.get(identifier_input) is None:
                continue
            wanted = self.store.coerce(
                field_map.model, field_map.identifier_field, fragment[identifier_input]
            )
            for child in existing:
                if id(child) in owners:
                    continue
                if self.store.key_for(child, (field_map.identifier_field,)) == (wanted,):
                    owners[id(child)] = index
                    break
