"""Settings file models.

The settings file controls how each entity and field is extracted. Every
optional attribute is None when it is absent from the file, which means
"inherit" from a less specific entry (see policy.py). Attributes are
snake_case in Python and camelCase in settings.json.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from . import __version__
from .exceptions import DataFileNotFoundError, SettingsFileError, VersionIncompatibleError

logger = logging.getLogger(__name__)


class FieldsSortOrder(str, Enum):
    """Order in which a record's fields are written."""

    NONE = "none"
    ASCENDING = "ascending"
    DESCENDING = "descending"


class _SettingsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldSettings(_SettingsModel):
    """Settings for one field name, or every field when `field` is '*'.

    Attributes:
        field: Field name or '*'
        file_name_field: Field whose value names the extracted file ('id' for the record id)
        extension: Extension of the extracted file, or 'auto' for content-sensitive types
        format: Pretty-print the value (JSON only)
        hash: Store a content hash next to the relative path
        remove_lookup_entity_name: Strip 'lookupentityname' from lookup fields
        remove: Drop the field entirely
    """
    field: Optional[str] = None
    file_name_field: Optional[str] = None
    extension: Optional[str] = None
    format: Optional[bool] = None
    hash: Optional[bool] = None
    remove_lookup_entity_name: Optional[bool] = None
    remove: Optional[bool] = None


class EntitySettings(_SettingsModel):
    """Settings for one entity name, or every entity when `entity` is '*'."""
    entity: Optional[str] = None
    file_name_field: Optional[str] = None
    file_name_suffix_field: Optional[str] = None
    extension: Optional[str] = None
    fields_sort_order: Optional[FieldsSortOrder] = None
    fields: List[FieldSettings] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def _none_fields_as_empty(cls, value):
        return [] if value is None else value

    @field_validator("fields_sort_order", mode="before")
    @classmethod
    def _normalize_sort_order(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def get_field(self, name: str) -> Optional[FieldSettings]:
        return next((f for f in self.fields if f.field == name), None)


class SettingsFile(_SettingsModel):
    """Contents of settings.json."""
    version: Optional[str] = None
    timestamp: Optional[datetime] = None
    entities: List[EntitySettings] = Field(default_factory=list)

    @field_validator("entities", mode="before")
    @classmethod
    def _none_entities_as_empty(cls, value):
        return [] if value is None else value

    def get_entity(self, name: str) -> Optional[EntitySettings]:
        return next((e for e in self.entities if e.entity == name), None)


def load_settings(path) -> SettingsFile:
    """Load a settings file.

    Raises:
        DataFileNotFoundError: If the file does not exist
        SettingsFileError: If the file is not valid JSON or not a valid settings document
    """
    path = Path(path)
    if not path.is_file():
        raise DataFileNotFoundError(path, "settings file not found")

    logger.debug("Loading file %s", path)
    try:
        content = path.read_text(encoding="utf-8-sig")
        return SettingsFile.model_validate(json.loads(content))
    except (OSError, UnicodeDecodeError) as e:
        raise SettingsFileError(f"Could not read settings file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SettingsFileError(f"Settings file {path} is not valid JSON: {e}") from e
    except ValidationError as e:
        raise SettingsFileError(f"Settings file {path} is invalid: {e}") from e


def load_settings_or_default(path=None) -> SettingsFile:
    """Load a settings file, or return empty settings when no path is given."""
    if path is None or str(path) == "":
        logger.debug("No settings file given, using default settings")
        return SettingsFile()
    return load_settings(path)


def settings_to_json(settings: SettingsFile) -> str:
    return settings.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def write_settings(settings: SettingsFile, path) -> Path:
    path = Path(path)
    logger.debug("Writing file %s", path)
    path.write_text(settings_to_json(settings), encoding="utf-8")
    return path


def stamp_settings(settings: SettingsFile) -> SettingsFile:
    """Return a copy stamped with the running tool version and the current UTC time."""
    return settings.model_copy(
        update={"version": __version__, "timestamp": datetime.now(timezone.utc)}
    )


def _major_version(version: Optional[str]) -> Optional[int]:
    if not version:
        return None
    head = version.strip().lstrip("vV").split(".")[0]
    return int(head) if head.isdigit() else None


def check_settings_version(settings: SettingsFile, tool_version: str = __version__) -> None:
    """Reject settings files written by a tool with a different major version."""
    settings_major = _major_version(settings.version)
    if settings_major is None or settings_major != _major_version(tool_version):
        raise VersionIncompatibleError(settings.version, tool_version)
