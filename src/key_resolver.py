"""
Composite key resolution for matching mapped-source and destination records.

Keys are ordered tuples of the key field values rather than joined strings, so
``1`` and ``"1"`` stay distinct, ``None`` never collides with ``"null"`` and field
values containing a delimiter cannot bleed into neighbouring fields.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Mapping, Sequence, Tuple

from models import Record

logger = logging.getLogger(__name__)

RecordKey = Tuple[Hashable, ...]


def _freeze(value: Any) -> Hashable:
    """Convert nested mappings, sets and lists into hashable equivalents."""
    if isinstance(value, Mapping):
        # Tagged so a mapping never equals a sequence of pairs.
        return (
            "__map__",
            frozenset((_freeze(k), _freeze(v)) for k, v in value.items()),
        )
    if isinstance(value, (set, frozenset)):
        return ("__set__", frozenset(_freeze(v) for v in value))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def key_of(record: Record, key_fields: Sequence[str]) -> RecordKey:
    """
    Build the composite key of a record.

    A missing key field contributes ``None``. With no key fields every record
    resolves to the empty key ``()``.
    """
    return tuple(_freeze(record.get(name)) for name in key_fields)


def build_index(
    records: List[Record], key_fields: Sequence[str], label: str = "records"
) -> Dict[RecordKey, Record]:
    """Build a key -> record index; the first occurrence of a key wins."""
    index: Dict[RecordKey, Record] = {}
    for record in records:
        key = key_of(record, key_fields)
        if key in index:
            logger.warning(
                "Duplicate key %r in %s; keeping first occurrence.", key, label
            )
            continue
        index[key] = record
    return index
