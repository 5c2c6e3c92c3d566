"""
Record Sync Engine - Main Entry Point

Loads a source and a destination dataset plus a field mapping file, computes the
change set and writes CSV/JSON reports. Handles CLI arguments, logging setup,
and coordinates service components.
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv

from exceptions import SyncEngineError
from mapping_config import load_mappings
from metrics import MetricsCollector
from models import ChangeSet, Settings
from record_loader import RecordLoader
from report_generator import ReportGenerator
from sync_engine import SyncEngine


load_dotenv()


logger = structlog.get_logger()


class SyncReportRunner:
    """
    Coordinates one report-only reconciliation run.

    - Loads source and destination records (file or URL)
    - Loads declarative field mappings
    - Computes the change set through SyncEngine
    - Writes CSV/JSON reports and returns the text summary
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.report_generator = ReportGenerator()

    def build_engine(self, source: str, destination: str, mapping: str) -> SyncEngine:
        """Load both datasets and the mapping file into a SyncEngine."""
        with RecordLoader(
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            max_retries=self.settings.HTTP_MAX_RETRIES,
        ) as loader:
            source_rows = loader.load(source)
            destination_rows = loader.load(destination)

        engine = SyncEngine(
            source_rows=source_rows,
            destination_rows=destination_rows,
            mappings=load_mappings(mapping),
        )
        return engine

    def run(
        self,
        source: str,
        destination: str,
        mapping: str,
        name: str,
        output_dir: Optional[Path] = None,
    ) -> bool:
        """
        Execute the run. Returns False when configuration, loading or mapping
        fails; the error is logged and no report is written.
        """
        output_dir = output_dir or self.settings.REPORT_OUTPUT_DIR
        logger.info("Starting sync report", name=name, source=source, destination=destination)

        try:
            engine = self.build_engine(source, destination, mapping)
            changes: ChangeSet = asyncio.run(engine.get_changes())
        except SyncEngineError as e:
            logger.error(
                "Sync report failed",
                name=name,
                error=str(e)[:500],
                details=e.details,
            )
            return False

        csv_path, summary_text, json_path = self.report_generator.generate_all_reports(
            changes, Path(output_dir) / name, name, engine.key_fields
        )
        print(summary_text)
        logger.info(
            "Sync report complete",
            name=name,
            csv_path=str(csv_path.as_posix()),
            json_path=str(json_path.as_posix()),
            total_changes=changes.total_changes,
        )
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure structured JSON logging.

    Sets up structlog with:
    - Timestamp formatting
    - Log level inclusion
    - Stack trace rendering
    - Exception info formatting
    - JSON output for log aggregation
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stdout,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="One-way record sync: report inserts, deletes and updates.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --source crm.csv --destination erp.json --mapping mapping.json
  python main.py --source https://api.example.com/users --destination users.json \\
      --mapping users_mapping.json --name users
        """,
    )
    parser.add_argument("--source", required=True, help="Source records (.json, .csv or URL)")
    parser.add_argument(
        "--destination", required=True, help="Destination records (.json, .csv or URL)"
    )
    parser.add_argument("--mapping", required=True, help="Field mapping JSON file")
    parser.add_argument("--name", default="sync", help="Run name used in report file names")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Report directory. Defaults to REPORT_OUTPUT_DIR.",
    )
    return parser


def main(argv=None) -> int:
    try:
        settings = Settings()
    except Exception as e:
        logger.error("Failed to load environment settings. Check your .env file.", error=str(e))
        return 1

    setup_logging(settings.LOG_LEVEL)
    args = build_parser().parse_args(argv)

    if settings.METRICS_ENABLED:
        MetricsCollector(port=settings.METRICS_PORT).start_metrics_server()

    runner = SyncReportRunner(settings)
    ok = runner.run(args.source, args.destination, args.mapping, args.name, args.output_dir)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
