from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .documents import Record
from .io_utils import write_text

logger = logging.getLogger(__name__)


def to_record_value(value: str) -> Any:
    if value in ("True", "False"):
        return value == "True"
    return value


def flatten_record(record: Record) -> Dict[str, Any]:
    """Flatten a record element into a sorted dict for side-by-side viewing.

    Record attributes become top-level keys. A field with only name/value maps
    name -> value; a field with more attributes maps name -> {attribute: value}.
    """
    flat: Dict[str, Any] = {}
    for key, value in record.element.attrib.items():
        flat[key] = to_record_value(value)

    for field in record.fields():
        attributes = {k: v for k, v in field.element.attrib.items() if k != "name"}
        if set(attributes) == {"value"}:
            flat[field.name] = to_record_value(attributes["value"])
        else:
            flat[field.name] = {k: to_record_value(v) for k, v in attributes.items()}

    return dict(sorted(flat.items()))


def render_record_yaml(record: Record) -> str:
    return yaml.safe_dump(flatten_record(record), allow_unicode=True, sort_keys=True, default_flow_style=False)


def write_record_yaml(record: Record, record_path: Path) -> Path | None:
    """Write '<record>.yaml' next to the record file."""
    record_path = Path(record_path)
    yaml_path = record_path.with_suffix(".yaml")
    if yaml_path == record_path:
        logger.warning("Record file %s is already .yaml, skipping side rendering", record_path)
        return None
    return write_text(yaml_path, render_record_yaml(record))
