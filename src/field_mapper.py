"""
Projects source records into the destination's field shape.

Rows are mapped concurrently; fields within a row are evaluated in declaration
order so a failing mapping stops the rest of its row, and the rows still in flight
are cancelled. Output order always follows source order regardless of which row
finishes first.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, List, Sequence

from exceptions import FieldMappingError
from models import FieldMapping, Record

logger = logging.getLogger(__name__)


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def map_row(
    row: Record, mappings: Sequence[FieldMapping], row_index: int = 0
) -> Record:
    """Apply every mapping to one source row."""
    mapped: Record = {}
    for mapping in mappings:
        if mapping.compute is None:
            mapped[mapping.field_name] = row.get(mapping.source_field)
            continue
        try:
            mapped[mapping.field_name] = await resolve(mapping.compute(row))
        except Exception as exc:
            raise FieldMappingError(
                f"Mapping for field '{mapping.field_name}' failed on row "
                f"{row_index}: {exc}",
                row_index=row_index,
                field_name=mapping.field_name,
            ) from exc
    return mapped


async def project(
    source_rows: Sequence[Record], mappings: Sequence[FieldMapping]
) -> List[Record]:
    """
    Map every source row to a destination-shaped record.

    Args:
        source_rows: Source records, in the order the output must follow
        mappings: Field mappings, evaluated in declaration order per row

    Returns:
        One mapped record per source row, in source order

    Raises:
        FieldMappingError: a compute function failed; no partial output is returned
            and rows still in flight are cancelled before the error propagates
    """
    tasks = [
        asyncio.ensure_future(map_row(row, mappings, index))
        for index, row in enumerate(source_rows)
    ]
    if not tasks:
        return []
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        unfinished = [task for task in tasks if not task.done()]
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)

    for task in tasks:
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()

    mapped = [task.result() for task in tasks]
    logger.debug("Projected %d source rows over %d mappings", len(mapped), len(mappings))
    return mapped
