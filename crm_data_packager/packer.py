"""Pack an extracted folder tree back into data.xml / data_schema.xml.

Entities without a folder are dropped from both documents. Externalized
field files that have gone missing are logged and skipped; every other
problem aborts the run.
"""

from __future__ import annotations

import base64
import json
import logging
import shutil
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from .config import (
    ANNOTATION_ENTITY,
    AUTO_EXTENSION,
    CONTENT_TYPES_FILE_NAME,
    DATA_FILE_NAME,
    DOCUMENT_BODY_FIELD,
    M2M_FOLDER_NAME,
    RECORDS_FOLDER_NAME,
    SCHEMA_FILE_NAME,
    SETTINGS_FILE_NAME,
)
from .documents import DataDocument, EntityData, FieldData, Record, SchemaDocument
from .exceptions import DataFileNotFoundError
from .io_utils import compact_json, html_encode, load_xml, read_bytes, read_text, write_xml
from .paths import resolve_relative_path
from .policy import FieldPolicy, resolve_entity_policy, resolve_field_policy
from .settings import SettingsFile, check_settings_version, load_settings

logger = logging.getLogger(__name__)


@dataclass
class PackedFolder:
    folder_path: Path
    data_path: Path
    schema_path: Path
    content_types_path: Path


def pack_folder(source_path, target_path) -> PackedFolder:
    """Pack the extracted folder `source_path` into the folder `target_path`.

    Raises:
        DataFileNotFoundError: If settings.json or a root document is missing
        SettingsFileError: If settings.json cannot be used
        VersionIncompatibleError: If settings.json was written by an incompatible version
        DocumentParseError: If a document is malformed
    """
    source = Path(source_path)
    target = Path(target_path)

    settings_path = source / SETTINGS_FILE_NAME
    if not settings_path.is_file():
        raise DataFileNotFoundError(
            settings_path,
            "no settings file found. Extract a data file with CRM Data Packager to create a compatible extracted folder",
        )
    settings = load_settings(settings_path)
    check_settings_version(settings)

    for required in (DATA_FILE_NAME, SCHEMA_FILE_NAME, CONTENT_TYPES_FILE_NAME):
        if not (source / required).is_file():
            raise DataFileNotFoundError(source / required)

    target.mkdir(parents=True, exist_ok=True)

    schema_path = pack_schema(source, target)
    data_path = pack_data(source, target, settings)
    content_types_path = pack_content_types(source, target)

    logger.info("Packed %s into %s", source, target)
    return PackedFolder(
        folder_path=target,
        data_path=data_path,
        schema_path=schema_path,
        content_types_path=content_types_path,
    )


def pack_content_types(source: Path, target: Path) -> Path:
    destination = target / CONTENT_TYPES_FILE_NAME
    logger.debug("Writing file %s", destination)
    shutil.copyfile(source / CONTENT_TYPES_FILE_NAME, destination)
    return destination


def pack_schema(source: Path, target: Path) -> Path:
    schema = SchemaDocument.load(source / SCHEMA_FILE_NAME)

    for entity in list(schema.entities()):
        name = entity.get("name", "")
        entity_folder = source / name if name else None
        if entity_folder is None or not entity_folder.is_dir():
            logger.debug("No data for entity %s, skipping schema pack", name)
            schema.remove_entity(entity)
            continue

        entity_schema_path = entity_folder / SCHEMA_FILE_NAME
        if not entity_schema_path.is_file():
            logger.warning("File not found at %s, keeping condensed schema for entity %s", entity_schema_path, name)
            continue
        schema.replace_entity(entity, load_xml(entity_schema_path))

    schema_path = target / SCHEMA_FILE_NAME
    write_xml(schema.root, schema_path, xml_declaration=True)
    return schema_path


def pack_data(source: Path, target: Path, settings: SettingsFile) -> Path:
    data = DataDocument.load(source / DATA_FILE_NAME)

    for entity in list(data.entities()):
        entity_folder = source / entity.name if entity.name else None
        if entity_folder is None or not entity_folder.is_dir():
            logger.debug("No data for entity %s, skipping data pack", entity.name)
            data.remove_entity(entity)
            continue

        logger.info("Packing entity %s", entity.name)
        pack_entity(entity, entity_folder, settings)

    data_path = target / DATA_FILE_NAME
    write_xml(data.root, data_path, xml_declaration=True)
    return data_path


def pack_entity(entity: EntityData, entity_folder: Path, settings: SettingsFile) -> int:
    entity_policy = resolve_entity_policy(settings, entity.name)
    records_folder = entity_folder / RECORDS_FOLDER_NAME

    records = ET.SubElement(entity.element, "records")
    count = 0
    for record_path in list_record_files(records_folder, entity_policy.extension):
        record = Record(load_xml(record_path))
        for field in list(record.fields()):
            if not field.path:
                continue
            policy = resolve_field_policy(settings, entity.name, field.name)
            load_field(entity.name, record, field, policy, records_folder)
        records.append(record.element)
        count += 1

    pack_m2m_relationships(entity, entity_folder)
    logger.debug("Packed %d records for entity %s", count, entity.name)
    return count


def list_record_files(records_folder: Path, extension: str):
    if not records_folder.is_dir():
        logger.warning("No %s folder found at %s", RECORDS_FOLDER_NAME, records_folder)
        return []
    return sorted(
        (p for p in records_folder.iterdir() if p.is_file() and p.suffix.lower() == extension.lower()),
        key=lambda p: p.name,
    )


def load_field(entity_name: str, record: Record, field: FieldData, policy: FieldPolicy, records_folder: Path) -> bool:
    """Put an externalized field's file content back into its value attribute.

    Returns False, leaving path and hash in place, when the file is missing.
    """
    file_path = resolve_relative_path(records_folder, field.path)
    if not file_path.is_file():
        logger.warning("File not found at %s, skipping file.", file_path)
        return False

    if entity_name == ANNOTATION_ENTITY and field.name == DOCUMENT_BODY_FIELD and policy.extension == AUTO_EXTENSION:
        value = base64.b64encode(read_bytes(file_path)).decode("ascii")
    else:
        value = read_text(file_path)
        if file_path.suffix == ".json" and policy.format:
            try:
                value = compact_json(value)
            except json.JSONDecodeError as e:
                logger.warning("Record %s field %s is not valid JSON (%s), packing it unformatted", record.id, field.name, e)
        value = html_encode(value)

    field.set_value(value)
    field.remove_path()
    field.remove_hash()
    return True


def pack_m2m_relationships(entity: EntityData, entity_folder: Path) -> int:
    container = ET.SubElement(entity.element, "m2mrelationships")
    m2m_folder = entity_folder / M2M_FOLDER_NAME
    if not m2m_folder.is_dir():
        return 0

    count = 0
    for relationship_folder in sorted(p for p in m2m_folder.iterdir() if p.is_dir()):
        for relationship_path in sorted(relationship_folder.glob("*.xml")):
            container.append(load_xml(relationship_path))
            count += 1
    return count
