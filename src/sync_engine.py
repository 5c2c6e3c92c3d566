"""
sync_engine.py

One-way record sync engine.

Coordinates the field mapper, diff engine and sync orchestrator over one pair of
source/destination snapshots. The engine keeps no state between calls: every
``get_changes()`` re-maps the source and re-diffs against the destination.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from diff_engine import DiffEngine
from exceptions import MappingConfigError
from field_mapper import project
from metrics import metrics, track_duration
from models import ChangeSet, FieldMapping, Record, SyncCallbacks, SyncResult
from sync_orchestrator import SyncOrchestrator

logger = structlog.get_logger()

MappingInput = Union[FieldMapping, Dict[str, Any]]
CallbacksInput = Union[SyncCallbacks, Dict[str, Any]]


def _validate_mappings(mappings: Sequence[MappingInput]) -> List[FieldMapping]:
    validated: List[FieldMapping] = []
    seen = set()
    for entry in mappings:
        try:
            mapping = (
                entry if isinstance(entry, FieldMapping) else FieldMapping(**entry)
            )
        except ValidationError as e:
            raise MappingConfigError(f"Invalid field mapping: {e}") from e
        if mapping.field_name in seen:
            raise MappingConfigError(
                f"Duplicate destination field '{mapping.field_name}'",
                {"field_name": mapping.field_name},
            )
        seen.add(mapping.field_name)
        validated.append(mapping)
    return validated


class SyncEngine:
    """
    Reconciles a source dataset into a destination dataset.

    Key fields default to the mappings flagged ``is_key``, in declaration order.
    An empty key list is accepted: every record then shares one key, which is
    almost always a configuration mistake on the caller's side.
    """

    def __init__(
        self,
        source_rows: List[Record],
        destination_rows: List[Record],
        mappings: Sequence[MappingInput],
        key_fields: Optional[Sequence[str]] = None,
        callbacks: Optional[CallbacksInput] = None,
    ) -> None:
        self.source_rows = source_rows
        self.destination_rows = destination_rows
        self.mappings = _validate_mappings(mappings)

        declared = [m.field_name for m in self.mappings]
        if key_fields is None:
            key_fields = [m.field_name for m in self.mappings if m.is_key]
        unknown = [name for name in key_fields if name not in declared]
        if unknown:
            raise MappingConfigError(
                f"Key fields not declared by any mapping: {', '.join(unknown)}",
                {"unknown_key_fields": unknown},
            )
        self.key_fields = list(key_fields)
        if not self.key_fields:
            logger.warning(
                "No key fields configured; all records will share one key",
                mappings=declared,
            )

        if callbacks is None or isinstance(callbacks, SyncCallbacks):
            self.callbacks = callbacks
        else:
            try:
                self.callbacks = SyncCallbacks(**callbacks)
            except ValidationError as e:
                raise MappingConfigError(f"Invalid sync callbacks: {e}") from e

        self.diff_engine = DiffEngine()
        self.orchestrator = SyncOrchestrator()

    @track_duration("map_fields")
    async def map_fields(self) -> List[Record]:
        """Project the source dataset into destination-shaped records."""
        mapped = await project(self.source_rows, self.mappings)
        logger.debug("Source rows mapped", count=len(mapped))
        return mapped

    @track_duration("get_changes")
    async def get_changes(self) -> ChangeSet:
        """Map the source and compute inserted, deleted and updated records."""
        mapped = await self.map_fields()
        changes = self.diff_engine.diff(
            mapped, self.destination_rows, self.mappings, self.key_fields
        )
        metrics.record_changes(
            len(changes.inserted), len(changes.deleted), len(changes.updated)
        )
        logger.info(
            "Changes detected",
            inserted=len(changes.inserted),
            deleted=len(changes.deleted),
            updated=len(changes.updated),
            key_fields=self.key_fields,
        )
        return changes

    @track_duration("sync")
    async def sync(self) -> SyncResult:
        """
        Compute changes and apply them through the configured callbacks.

        Returns:
            SyncResult; categories without a callback are None

        Raises:
            FieldMappingError: mapping the source failed
            CallbackError: a callback failed
        """
        changes = await self.get_changes()
        result = await self.orchestrator.apply(changes, self.callbacks)
        logger.info(
            "Sync complete",
            inserts=None if result.inserts is None else len(result.inserts),
            deletes=None if result.deletes is None else len(result.deletes),
            updates=None if result.updates is None else len(result.updates),
        )
        return result
