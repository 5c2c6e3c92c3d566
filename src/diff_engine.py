"""
Core diff logic for reconciling mapped source records against a destination.

Produces the inserted / deleted / updated change set. Uses key indexes for
near-linear lookups; the first destination record for a key wins, as does the
first mapped record when checking which destination records still exist.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from key_resolver import build_index, key_of
from models import (
    ChangeSet,
    FieldChange,
    FieldMapping,
    FieldOverride,
    InsertedRecord,
    Record,
    UpdatedRecord,
)

# Standard logger for operational monitoring
logger = logging.getLogger(__name__)


def _member_equal(new: Any, old: Any) -> bool:
    # Nested containers are not descended into.
    if isinstance(new, (Mapping, list)):
        return new is old
    return new == old


def shallow_equal(new: Mapping[str, Any], old: Any) -> bool:
    """
    Compare the members of ``new`` against ``old`` one level deep.

    Scalar members compare with ``==``; members that are themselves mappings or
    lists must be the same object.
    """
    if not isinstance(old, Mapping):
        return False
    return all(_member_equal(value, old.get(name)) for name, value in new.items())


def values_equal(new: Any, old: Any) -> bool:
    """Default field equality: shallow for nested mappings, ``==`` otherwise."""
    if isinstance(new, Mapping):
        return shallow_equal(new, old)
    return new == old


class DiffEngine:
    """Compares mapped source records with destination records."""

    def __init__(self) -> None:
        """Initialize diff engine."""
        pass

    @staticmethod
    def _overrides(
        row: Record,
        mappings: Sequence[FieldMapping],
        pick: Callable[[FieldMapping], Optional[Callable[[Record], Any]]],
    ) -> List[FieldOverride]:
        overrides: List[FieldOverride] = []
        for mapping in mappings:
            fn = pick(mapping)
            if fn is not None:
                overrides.append(FieldOverride(field_name=mapping.field_name, value=fn(row)))
        return overrides

    @staticmethod
    def _field_changes(
        mapped_row: Record,
        destination_row: Record,
        comparators: Dict[str, Callable[[Record, Record], bool]],
    ) -> List[FieldChange]:
        changes: List[FieldChange] = []
        for field_name, new_value in mapped_row.items():
            old_value = destination_row.get(field_name)
            compare = comparators.get(field_name)
            if compare is not None:
                same = bool(compare(mapped_row, destination_row))
            else:
                same = values_equal(new_value, old_value)
            if not same:
                changes.append(
                    FieldChange(
                        field_name=field_name, old_value=old_value, new_value=new_value
                    )
                )
        return changes

    def diff(
        self,
        mapped_rows: List[Record],
        destination_rows: List[Record],
        mappings: Sequence[FieldMapping],
        key_fields: Sequence[str],
    ) -> ChangeSet:
        """
        Execute the three-way diff between mapped source and destination records.

        Args:
            mapped_rows: Source records already projected into destination shape
            destination_rows: Records currently in the destination
            mappings: Field mappings supplying compare and override functions
            key_fields: Ordered key field names

        Returns:
            ChangeSet whose lists follow the order of their driving input
        """
        mapped_keys = {key_of(row, key_fields) for row in mapped_rows}
        dst_index = build_index(destination_rows, key_fields, label="destination")
        comparators = {m.field_name: m.compare for m in mappings if m.compare is not None}

        deleted: List[Record] = [
            row for row in destination_rows if key_of(row, key_fields) not in mapped_keys
        ]

        inserted: List[InsertedRecord] = []
        updated: List[UpdatedRecord] = []

        for row in mapped_rows:
            match = dst_index.get(key_of(row, key_fields))
            if match is None:
                inserted.append(
                    InsertedRecord(
                        row=row,
                        overrides=self._overrides(row, mappings, lambda m: m.insert_override),
                    )
                )
                continue

            changes = self._field_changes(row, match, comparators)
            if changes:
                updated.append(
                    UpdatedRecord(
                        row=row,
                        fields=changes,
                        overrides=self._overrides(row, mappings, lambda m: m.update_override),
                    )
                )

        logger.info(
            "Diff complete: %d inserted, %d deleted, %d updated "
            "(%d mapped, %d destination)",
            len(inserted),
            len(deleted),
            len(updated),
            len(mapped_rows),
            len(destination_rows),
        )
        return ChangeSet(inserted=inserted, deleted=deleted, updated=updated)


def find_changes(
    mapped_rows: List[Record],
    destination_rows: List[Record],
    key_fields: Sequence[str],
) -> ChangeSet:
    """Diff two record lists with default comparison and no overrides."""
    return DiffEngine().diff(mapped_rows, destination_rows, [], key_fields)
