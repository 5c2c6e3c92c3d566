from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, List, Union

import pandas as pd
import requests

from exceptions import RecordLoadError
from models import Record

logger = logging.getLogger(__name__)


def _clean_value(value: Any) -> Any:
    # numpy scalars -> python scalars
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class RecordLoader:
    """
    Loads source or destination records for the CLI.
    Supports JSON and CSV files and HTTP endpoints returning a JSON list.
    """

    def __init__(self, timeout: int = 30, max_retries: int = 3) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = requests.Session()

    def _make_request_with_retry(self, url: str) -> requests.Response:
        """
        HTTP GET with exponential backoff retry logic.
        Covers network failures, timeouts and error status codes.
        """
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    wait_time = 2**attempt
                    logger.warning(
                        f"Request error (attempt {attempt + 1}/{self.max_retries}): {str(e)}. "
                        f"Retrying in {wait_time}s..."
                    )
                    time.sleep(wait_time)
                else:
                    logger.error(
                        f"Request failed after {self.max_retries} attempts: {str(e)}"
                    )
                    raise

        raise requests.RequestException("Request failed for unknown reason")

    @staticmethod
    def _records_from_json(data: Any, origin: str) -> List[Record]:
        if isinstance(data, dict):
            data = data.get("records")
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise RecordLoadError(
                f"{origin} must contain a list of objects (or an object with a 'records' list)"
            )
        return data

    def load_url(self, url: str) -> List[Record]:
        """Fetch records from an HTTP endpoint returning JSON."""
        try:
            response = self._make_request_with_retry(url)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise RecordLoadError(f"Could not fetch records from {url}: {e}") from e
        return self._records_from_json(data, url)

    def load_file(self, path: Union[str, Path]) -> List[Record]:
        """Read records from a .json or .csv file."""
        path = Path(path)
        suffix = path.suffix.lower()
        try:
            if suffix == ".json":
                with open(path, encoding="utf-8") as f:
                    return self._records_from_json(json.load(f), str(path))
            if suffix == ".csv":
                df = pd.read_csv(path)
                return [
                    {column: _clean_value(value) for column, value in row.items()}
                    for row in df.to_dict(orient="records")
                ]
        except (OSError, ValueError) as e:
            raise RecordLoadError(f"Could not read records from {path}: {e}") from e
        raise RecordLoadError(f"Unsupported record file type: {path}")

    def load(self, location: str) -> List[Record]:
        """Load records from a file path or http(s) URL."""
        if location.startswith(("http://", "https://")):
            records = self.load_url(location)
        else:
            records = self.load_file(location)
        logger.info(f"Loaded {len(records)} records from {location}")
        return records

    def __enter__(self) -> 'RecordLoader':
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit with session cleanup."""
        self.close()

    def close(self) -> None:
        """Close the requests session."""
        self.session.close()
