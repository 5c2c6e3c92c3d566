"""
Loads declarative field mappings from JSON files.

Each entry names a destination ``field`` and exactly one of ``source`` (direct
copy), ``template`` (``str.format`` over the source row) or ``constant``.
``key: true`` marks the field as part of the composite key.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import structlog
from pydantic import ValidationError

from exceptions import MappingConfigError
from models import FieldMapping, Record

logger = structlog.get_logger()

_VALUE_KINDS = ("source", "template", "constant")


def _template_fn(template: str):
    def compute(row: Record) -> str:
        return template.format_map(row)

    return compute


def _constant_fn(value: Any):
    def compute(row: Record) -> Any:
        return value

    return compute


def mapping_from_dict(entry: Dict[str, Any]) -> FieldMapping:
    """Build one FieldMapping from a mapping-file entry."""
    if not isinstance(entry, dict) or "field" not in entry:
        raise MappingConfigError(f"Mapping entry needs a 'field': {entry!r}")

    kinds = [kind for kind in _VALUE_KINDS if kind in entry]
    if len(kinds) != 1:
        raise MappingConfigError(
            f"Mapping for '{entry['field']}' needs exactly one of "
            f"{', '.join(_VALUE_KINDS)}",
            {"field_name": entry["field"], "found": kinds},
        )

    kind = kinds[0]
    params: Dict[str, Any] = {
        "field_name": entry["field"],
        "is_key": bool(entry.get("key", False)),
    }
    if kind == "source":
        params["source_field"] = entry["source"]
    elif kind == "template":
        params["compute"] = _template_fn(entry["template"])
    else:
        params["compute"] = _constant_fn(entry["constant"])

    try:
        return FieldMapping(**params)
    except ValidationError as e:
        raise MappingConfigError(f"Invalid mapping for '{entry['field']}': {e}") from e


def load_mappings(path: Union[str, Path]) -> List[FieldMapping]:
    """
    Read a mapping file.

    Accepts either ``{"fields": [...]}`` or a bare list of entries.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MappingConfigError(f"Could not read mapping file {path}: {e}") from e

    entries = data.get("fields") if isinstance(data, dict) else data
    if not isinstance(entries, list) or not entries:
        raise MappingConfigError(f"Mapping file {path} declares no fields")

    mappings = [mapping_from_dict(entry) for entry in entries]
    logger.info(
        "Loaded field mappings",
        path=str(path),
        fields=len(mappings),
        key_fields=[m.field_name for m in mappings if m.is_key],
    )
    return mappings
