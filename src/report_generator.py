"""
Change set reporting module for CSV, JSON, and text summaries.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd
import structlog

from key_resolver import key_of
from models import ChangeSet

logger = structlog.get_logger()

CSV_COLUMNS = ["change_type", "key", "field_name", "old_value", "new_value"]


class ReportGenerator:
    """Builds CSV, JSON, and text summaries from a change set."""

    def __init__(self, report_prefix: str = "sync_report") -> None:
        self.report_prefix = report_prefix

    def generate_all_reports(
        self,
        change_set: ChangeSet,
        output_dir: Path,
        name: str,
        key_fields: Sequence[str],
    ) -> Tuple[Path, str, Path]:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        csv_path = self._generate_detailed_csv(change_set, output_dir, name, key_fields)

        summary_text = self._generate_summary(change_set, name)

        json_path = self._generate_json_report(change_set, output_dir, name, key_fields)

        return csv_path, summary_text, json_path

    def _report_stem(self, name: str) -> str:
        return f"{self.report_prefix}_{name}"

    @staticmethod
    def _change_rows(
        change_set: ChangeSet, key_fields: Sequence[str]
    ) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for record in change_set.inserted:
            rows.append(
                {"change_type": "insert", "key": str(key_of(record.row, key_fields))}
            )
        for row in change_set.deleted:
            rows.append({"change_type": "delete", "key": str(key_of(row, key_fields))})
        for record in change_set.updated:
            key = str(key_of(record.row, key_fields))
            for change in record.fields:
                rows.append(
                    {
                        "change_type": "update",
                        "key": key,
                        "field_name": change.field_name,
                        "old_value": change.old_value,
                        "new_value": change.new_value,
                    }
                )
        return rows

    def _generate_detailed_csv(
        self,
        change_set: ChangeSet,
        output_dir: Path,
        name: str,
        key_fields: Sequence[str],
    ) -> Path:

        csv_path = output_dir / f"{self._report_stem(name)}.csv"

        df = pd.DataFrame(self._change_rows(change_set, key_fields), columns=CSV_COLUMNS)
        df.to_csv(csv_path, index=False)
        logger.info("Wrote detailed CSV report", path=str(csv_path), rows=len(df))
        return csv_path

    def _generate_summary(self, change_set: ChangeSet, name: str) -> str:

        changed_fields = sum(len(record.fields) for record in change_set.updated)

        report = f"""
Record Sync Summary
===================

Sync: {name}
Report Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}

CHANGE OVERVIEW
---------------
+ Records to insert: {len(change_set.inserted):,}
- Records to delete: {len(change_set.deleted):,}
~ Records to update: {len(change_set.updated):,} ({changed_fields:,} fields)

RECOMMENDED ACTIONS
-------------------
{self._generate_recommendations(change_set)}

"""
        return report.strip()

    def _generate_json_report(
        self,
        change_set: ChangeSet,
        output_dir: Path,
        name: str,
        key_fields: Sequence[str],
    ) -> Path:

        json_path = output_dir / f"{self._report_stem(name)}.json"

        report_data = {
            "report_metadata": {
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "name": name,
                "key_fields": list(key_fields),
            },
            "summary": {
                "inserted": len(change_set.inserted),
                "deleted": len(change_set.deleted),
                "updated": len(change_set.updated),
                "total_changes": change_set.total_changes,
            },
            "changes": change_set.model_dump(mode="json"),
        }

        with open(json_path, "w") as f:
            json.dump(report_data, f, indent=2, default=str)

        logger.info("Wrote JSON report", path=str(json_path))
        return json_path

    def _generate_recommendations(self, change_set: ChangeSet) -> str:

        recommendations = []

        if change_set.is_empty:
            recommendations.append("No action required - destination is in sync")
        else:
            recommendations.append("Review the detailed report before applying changes")

        if change_set.deleted and not change_set.inserted and not change_set.updated:
            recommendations.append(
                "Only deletions detected: confirm the source snapshot is complete"
            )

        return "\n".join(recommendations)
