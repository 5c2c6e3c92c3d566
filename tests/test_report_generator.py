"""
Unit tests for ReportGenerator
Covers CSV and JSON report generation, text summaries and recommendations.
"""

import csv
import json
import shutil
import tempfile
from pathlib import Path

import pytest

from models import ChangeSet, FieldChange, InsertedRecord, UpdatedRecord
from report_generator import CSV_COLUMNS, ReportGenerator


class TestReportGenerator:
    """Test suite for the ReportGenerator class"""

    @pytest.fixture
    def generator(self):
        """Provides a ReportGenerator instance for testing"""
        return ReportGenerator()

    @pytest.fixture
    def temp_output_dir(self):
        """Provides a temporary directory for storing test outputs"""
        temp_dir = Path(tempfile.mkdtemp())
        yield temp_dir
        if temp_dir.exists():
            shutil.rmtree(temp_dir)

    @pytest.fixture
    def sample_change_set(self):
        """Provides the change set from the documented example"""
        return ChangeSet(
            inserted=[InsertedRecord(row={"id": 2, "FullName": "Jane Diana"})],
            deleted=[{"id": 3, "FullName": "Doe Risko"}],
            updated=[
                UpdatedRecord(
                    row={"id": 4, "FullName": "Rid Lomba"},
                    fields=[
                        FieldChange(
                            field_name="FullName",
                            old_value="Fids Almo",
                            new_value="Rid Lomba",
                        )
                    ],
                )
            ],
        )

    def test_generate_all_reports(self, generator, temp_output_dir, sample_change_set):
        csv_path, summary_text, json_path = generator.generate_all_reports(
            sample_change_set, temp_output_dir, "users", ["id"]
        )

        assert csv_path == temp_output_dir / "sync_report_users.csv"
        assert json_path == temp_output_dir / "sync_report_users.json"
        assert csv_path.exists()
        assert json_path.exists()
        assert "Record Sync Summary" in summary_text

    def test_csv_has_one_line_per_change(self, generator, temp_output_dir, sample_change_set):
        csv_path, _, _ = generator.generate_all_reports(
            sample_change_set, temp_output_dir, "users", ["id"]
        )
        with open(csv_path, newline="") as f:
            reader = csv.DictReader(f)
            rows = list(reader)

        assert reader.fieldnames == CSV_COLUMNS
        assert [r["change_type"] for r in rows] == ["insert", "delete", "update"]
        assert rows[0]["key"] == "(2,)"
        assert rows[2]["field_name"] == "FullName"
        assert rows[2]["old_value"] == "Fids Almo"
        assert rows[2]["new_value"] == "Rid Lomba"

    def test_csv_for_empty_change_set(self, generator, temp_output_dir):
        csv_path, _, _ = generator.generate_all_reports(
            ChangeSet(), temp_output_dir, "empty", ["id"]
        )
        with open(csv_path, newline="") as f:
            reader = csv.DictReader(f)
            assert list(reader) == []
            assert reader.fieldnames == CSV_COLUMNS

    def test_json_report_contents(self, generator, temp_output_dir, sample_change_set):
        _, _, json_path = generator.generate_all_reports(
            sample_change_set, temp_output_dir, "users", ["id"]
        )
        data = json.loads(json_path.read_text())

        assert data["report_metadata"]["key_fields"] == ["id"]
        assert data["summary"] == {"inserted": 1, "deleted": 1, "updated": 1, "total_changes": 3}
        assert data["changes"]["deleted"] == [{"id": 3, "FullName": "Doe Risko"}]
        assert data["changes"]["updated"][0]["fields"][0]["new_value"] == "Rid Lomba"

    def test_summary_counts(self, generator, sample_change_set):
        summary = generator._generate_summary(sample_change_set, "users")
        assert "Records to insert: 1" in summary
        assert "Records to delete: 1" in summary
        assert "Records to update: 1 (1 fields)" in summary

    def test_recommendations_when_in_sync(self, generator):
        assert "No action required" in generator._generate_recommendations(ChangeSet())

    def test_recommendations_for_deletions_only(self, generator):
        text = generator._generate_recommendations(ChangeSet(deleted=[{"id": 1}]))
        assert "Only deletions detected" in text

    def test_output_dir_is_created(self, generator, temp_output_dir, sample_change_set):
        nested = temp_output_dir / "a" / "b"
        csv_path, _, _ = generator.generate_all_reports(
            sample_change_set, nested, "users", ["id"]
        )
        assert csv_path.parent == nested
