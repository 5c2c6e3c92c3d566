"""
exceptions.py

Error taxonomy for the record sync engine.

Every error raised by the engine derives from SyncEngineError so callers can catch
one type at the edge. Failures inside caller-supplied functions are wrapped and
chained (``raise ... from exc``), never swallowed.
"""

from typing import Any, Dict, Optional


class SyncEngineError(Exception):
    """Base exception for the sync engine."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class MappingConfigError(SyncEngineError):
    """Invalid field mapping list, mapping file or key field configuration."""


class FieldMappingError(SyncEngineError):
    """A compute function failed while projecting a source row."""

    def __init__(self, message: str, row_index: int, field_name: str):
        super().__init__(message, {"row_index": row_index, "field_name": field_name})
        self.row_index = row_index
        self.field_name = field_name


class CallbackError(SyncEngineError):
    """An insert, delete or update callback failed during apply."""

    def __init__(self, message: str, category: str, record_index: int):
        super().__init__(
            message, {"category": category, "record_index": record_index}
        )
        self.category = category
        self.record_index = record_index


class RecordLoadError(SyncEngineError):
    """Source or destination records could not be loaded."""
