"""
Applies a change set through caller-supplied insert/delete/update callbacks.

Every invocation within a category is launched concurrently and awaited jointly.
Categories run side by side and do not cancel each other; once all have settled
the first failed category (insert, delete, update order) is raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from exceptions import CallbackError
from field_mapper import resolve
from metrics import metrics
from models import ChangeSet, SyncCallbacks, SyncResult

logger = logging.getLogger(__name__)

CATEGORIES = ("insert", "delete", "update")


async def _invoke(
    category: str, index: int, fn: Callable[..., Any], args: Tuple[Any, ...]
) -> Any:
    try:
        return await resolve(fn(*args))
    except Exception as exc:
        raise CallbackError(
            f"{category} callback failed for record {index}: {exc}",
            category=category,
            record_index=index,
        ) from exc


class SyncOrchestrator:
    """Fans change set records out to effect callbacks and collects results."""

    @staticmethod
    def _arguments(change_set: ChangeSet, category: str) -> List[Tuple[Any, ...]]:
        if category == "insert":
            return [(record.payload,) for record in change_set.inserted]
        if category == "delete":
            return [(dict(row),) for row in change_set.deleted]
        return [(record.payload, list(record.fields)) for record in change_set.updated]

    async def _apply_category(
        self, category: str, fn: Callable[..., Any], calls: Sequence[Tuple[Any, ...]]
    ) -> List[Any]:
        try:
            results = await asyncio.gather(
                *(_invoke(category, i, fn, args) for i, args in enumerate(calls))
            )
        except CallbackError:
            metrics.record_callbacks(category, "error", len(calls))
            raise
        metrics.record_callbacks(category, "success", len(calls))
        logger.debug("Applied %d %s callbacks", len(results), category)
        return list(results)

    async def apply(
        self, change_set: ChangeSet, callbacks: Optional[SyncCallbacks]
    ) -> SyncResult:
        """
        Invoke each supplied callback once per affected record.

        Args:
            change_set: Output of the diff stage
            callbacks: Insert/delete/update callables; any may be omitted

        Returns:
            SyncResult with one positionally aligned list per supplied callback

        Raises:
            CallbackError: a callback failed; no partial results are returned.
                Other callbacks of the failed category are not cancelled and may
                still complete after this is raised.
        """
        callbacks = callbacks or SyncCallbacks()
        pending: List[Tuple[str, Awaitable[List[Any]]]] = []
        for category in CATEGORIES:
            fn = getattr(callbacks, category)
            if fn is not None:
                calls = self._arguments(change_set, category)
                pending.append((category, self._apply_category(category, fn, calls)))

        outcomes = await asyncio.gather(
            *(coro for _, coro in pending), return_exceptions=True
        )

        results = {}
        for (category, _), outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                raise outcome
            results[category + "s"] = outcome

        return SyncResult(**results)
