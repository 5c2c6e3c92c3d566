"""
models.py

Defines all core data models for the Record Sync Engine.
Models are built using Pydantic for validation, type safety, and serialization.
Field mappings describe how a destination record is derived from a source record;
change sets and sync results are the outputs of one reconciliation pass.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SkipValidation, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# A record is an open, ordered mapping from field name to value.
Record = Dict[str, Any]


# -----------------------------------------------------------------------------
# 1. System Configuration Model
# -----------------------------------------------------------------------------
class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables or .env files.

    Only the CLI wrapper reads these; the engine itself is configured per call.
    """

    # Logging / Reporting
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    REPORT_OUTPUT_DIR: Path = Field(
        default=Path("local_reports"), description="Directory for report outputs"
    )

    # Record loading over HTTP
    HTTP_TIMEOUT_SECONDS: int = Field(default=30, description="HTTP request timeout")
    HTTP_MAX_RETRIES: int = Field(default=3, description="HTTP retry attempts")

    # Metrics
    METRICS_ENABLED: bool = Field(
        default=False, description="Expose Prometheus metrics over HTTP"
    )
    METRICS_PORT: int = Field(default=8000, description="Prometheus metrics port")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# -----------------------------------------------------------------------------
# 2. Field Mapping Model
# -----------------------------------------------------------------------------
class FieldMapping(BaseModel):
    """
    Describes how one destination field is derived from a source record.

    Exactly one of ``source_field`` (direct copy) or ``compute`` (row -> value,
    may return an awaitable) must be given. ``compare`` receives
    ``(mapped_row, destination_row)`` and returns False when the field differs.
    Override functions receive the mapped row and produce an alternate value used
    only in insert/update effect payloads, never for diffing.
    """

    model_config = ConfigDict(frozen=True)

    field_name: str = Field(..., min_length=1, description="Destination field name")
    is_key: bool = Field(default=False, description="Part of the composite key")
    source_field: Optional[str] = Field(None, description="Source field to copy")
    compute: Optional[Callable[[Record], Any]] = Field(
        None, description="Computes the value from the full source row"
    )
    compare: Optional[Callable[[Record, Record], bool]] = Field(
        None, description="Custom equality over (mapped_row, destination_row)"
    )
    insert_override: Optional[Callable[[Record], Any]] = Field(
        None, description="Alternate payload value for inserts"
    )
    update_override: Optional[Callable[[Record], Any]] = Field(
        None, description="Alternate payload value for updates"
    )

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "FieldMapping":
        if (self.source_field is None) == (self.compute is None):
            raise ValueError(
                f"Field mapping '{self.field_name}' needs exactly one of "
                "source_field or compute"
            )
        return self


# -----------------------------------------------------------------------------
# 3. Change Set Models
# -----------------------------------------------------------------------------
class FieldChange(BaseModel):
    """A single differing field between a mapped record and its destination match."""

    field_name: str = Field(..., description="Destination field name")
    old_value: Any = Field(None, description="Value currently in the destination")
    new_value: Any = Field(None, description="Value derived from the source")


class FieldOverride(BaseModel):
    """An effect-only value computed for a field."""

    field_name: str = Field(..., description="Destination field name")
    value: Any = Field(None, description="Override value for the effect payload")


def _merge_overrides(row: Record, overrides: List[FieldOverride]) -> Record:
    payload = dict(row)
    for override in overrides:
        payload[override.field_name] = override.value
    return payload


class InsertedRecord(BaseModel):
    """A mapped record with no destination match."""

    row: Record = Field(..., description="Mapped record")
    overrides: List[FieldOverride] = Field(default_factory=list)

    @property
    def payload(self) -> Record:
        """Mapped record with insert overrides merged in."""
        return _merge_overrides(self.row, self.overrides)


class UpdatedRecord(BaseModel):
    """A mapped record whose destination match differs in at least one field."""

    row: Record = Field(..., description="Mapped record")
    fields: List[FieldChange] = Field(..., min_length=1)
    overrides: List[FieldOverride] = Field(default_factory=list)

    @property
    def payload(self) -> Record:
        """Mapped record with update overrides merged in."""
        return _merge_overrides(self.row, self.overrides)


class ChangeSet(BaseModel):
    """Output of one reconciliation pass."""

    inserted: List[InsertedRecord] = Field(default_factory=list)
    # Destination records are kept as the same objects, not validated copies.
    deleted: SkipValidation[List[Record]] = Field(default_factory=list)
    updated: List[UpdatedRecord] = Field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return len(self.inserted) + len(self.deleted) + len(self.updated)

    @property
    def is_empty(self) -> bool:
        return self.total_changes == 0


# -----------------------------------------------------------------------------
# 4. Sync Contracts
# -----------------------------------------------------------------------------
class SyncCallbacks(BaseModel):
    """
    Optional effect callbacks. Each may return a plain value or an awaitable.

    ``insert(payload)``, ``delete(destination_row)``, ``update(payload, fields)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    insert: Optional[Callable[..., Any]] = None
    delete: Optional[Callable[..., Any]] = None
    update: Optional[Callable[..., Any]] = None


class SyncResult(BaseModel):
    """
    Per-category callback results, positionally aligned with the change set.

    A slot is None when no callback was supplied for that category.
    """

    inserts: Optional[List[Any]] = None
    deletes: Optional[List[Any]] = None
    updates: Optional[List[Any]] = None
