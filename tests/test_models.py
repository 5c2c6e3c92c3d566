# tests/test_models.py

import pytest
from pathlib import Path

from pydantic import ValidationError

from models import (
    Settings,
    FieldMapping,
    FieldChange,
    FieldOverride,
    InsertedRecord,
    UpdatedRecord,
    ChangeSet,
    SyncCallbacks,
    SyncResult,
)


# -------------------------------
# Settings Tests
# -------------------------------
def test_settings_defaults(monkeypatch):
    """Test default settings values."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.LOG_LEVEL == "INFO"
    assert settings.REPORT_OUTPUT_DIR == Path("local_reports")
    assert settings.HTTP_MAX_RETRIES == 3
    assert settings.METRICS_ENABLED is False


def test_settings_from_environment(monkeypatch):
    """Test settings are read from environment variables."""
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "5")
    settings = Settings(_env_file=None)
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.HTTP_TIMEOUT_SECONDS == 5


# -------------------------------
# FieldMapping Tests
# -------------------------------
def test_field_mapping_direct_copy():
    mapping = FieldMapping(field_name="id", source_field="id", is_key=True)
    assert mapping.is_key
    assert mapping.compute is None


def test_field_mapping_computed():
    mapping = FieldMapping(field_name="FullName", compute=lambda row: row["name"])
    assert mapping.compute({"name": "x"}) == "x"
    assert mapping.is_key is False


def test_field_mapping_requires_a_value_source():
    with pytest.raises(ValidationError):
        FieldMapping(field_name="id")


def test_field_mapping_rejects_both_value_sources():
    with pytest.raises(ValidationError):
        FieldMapping(field_name="id", source_field="id", compute=lambda row: 1)


def test_field_mapping_rejects_non_callable_compute():
    with pytest.raises(ValidationError):
        FieldMapping(field_name="id", compute="not callable")


# -------------------------------
# Change Set Tests
# -------------------------------
def test_inserted_record_payload_merges_overrides():
    record = InsertedRecord(
        row={"id": 1, "name": "a"},
        overrides=[FieldOverride(field_name="name", value="A")],
    )
    assert record.payload == {"id": 1, "name": "A"}
    assert record.row == {"id": 1, "name": "a"}


def test_updated_record_requires_fields():
    with pytest.raises(ValidationError):
        UpdatedRecord(row={"id": 1}, fields=[])


def test_updated_record_payload_without_overrides():
    record = UpdatedRecord(
        row={"id": 1, "age": 3},
        fields=[FieldChange(field_name="age", old_value=2, new_value=3)],
    )
    assert record.payload == {"id": 1, "age": 3}


def test_change_set_counts():
    change_set = ChangeSet(
        inserted=[InsertedRecord(row={"id": 1})],
        deleted=[{"id": 2}, {"id": 3}],
    )
    assert change_set.total_changes == 3
    assert not change_set.is_empty
    assert ChangeSet().is_empty


def test_change_set_serialization():
    change_set = ChangeSet(
        updated=[
            UpdatedRecord(
                row={"id": 4, "FullName": "Rid Lomba"},
                fields=[
                    FieldChange(
                        field_name="FullName", old_value="Fids Almo", new_value="Rid Lomba"
                    )
                ],
            )
        ]
    )
    data = change_set.model_dump()
    assert data["updated"][0]["fields"][0]["old_value"] == "Fids Almo"
    assert data["inserted"] == []


# -------------------------------
# Sync Contract Tests
# -------------------------------
def test_sync_callbacks_all_optional():
    callbacks = SyncCallbacks()
    assert callbacks.insert is None
    assert callbacks.delete is None
    assert callbacks.update is None


def test_sync_result_defaults_to_none():
    result = SyncResult(inserts=[1])
    assert result.inserts == [1]
    assert result.deletes is None
    assert result.updates is None
