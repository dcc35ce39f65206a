"""Extract a data export folder into a per-entity, per-record folder tree.

The folder must already hold the unzipped export (data.xml,
data_schema.xml, [Content_Types].xml). Extraction happens in place: the
root documents are replaced by their condensed versions and
settings.json is written next to them.
"""

from __future__ import annotations

import base64
import binascii
import copy
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .config import (
    ANNOTATION_ENTITY,
    ANNOTATION_FILE_NAME_FIELD,
    AUTO_EXTENSION,
    CONTENT_SNIPPET_ENTITY,
    CONTENT_SNIPPET_HTML_TYPE,
    CONTENT_SNIPPET_TYPE_FIELD,
    CONTENT_SNIPPET_VALUE_FIELD,
    DATA_FILE_NAME,
    DOCUMENT_BODY_FIELD,
    SCHEMA_FILE_NAME,
    SETTINGS_FILE_NAME,
)
from .documents import (
    DataDocument,
    EntityData,
    FieldData,
    FieldType,
    Record,
    SchemaDocument,
    condense_document,
    resolve_schema_field_name,
)
from .exceptions import DataFileNotFoundError
from .flattening import write_record_yaml
from .io_utils import compute_bytes_hash, compute_text_hash, html_decode, pretty_json, write_bytes, write_text, write_xml
from .paths import allocate_file_name, escape_file_name, join_relative_path, resolve_file_name_prefix, split_file_name
from .policy import EntityPolicy, FieldPolicy, resolve_entity_policy, resolve_field_policy
from .settings import SettingsFile, load_settings_or_default, stamp_settings, write_settings

logger = logging.getLogger(__name__)


@dataclass
class ExtractedFolder:
    folder_path: Path
    data_path: Path
    schema_path: Path
    settings_path: Path


def extract_folder(folder_path, settings_file_path=None, write_yaml: bool = False) -> ExtractedFolder:
    """Extract the export unzipped in `folder_path`.

    Args:
        folder_path: Folder holding data.xml and data_schema.xml
        settings_file_path: Optional settings.json (or an already loaded SettingsFile)
        write_yaml: Also write a .yaml rendering next to each record file

    Raises:
        DataFileNotFoundError: If the folder or a required document is missing
        DocumentParseError: If a document is malformed
        SettingsFileError: If the settings file cannot be used
    """
    folder = Path(folder_path)
    if not folder.is_dir():
        raise DataFileNotFoundError(folder, "folder not found")

    if isinstance(settings_file_path, SettingsFile):
        settings = settings_file_path
    else:
        settings = load_settings_or_default(settings_file_path)
    data = DataDocument.load(folder / DATA_FILE_NAME)
    schema = SchemaDocument.load(folder / SCHEMA_FILE_NAME)

    data_path = extract_data(folder, data, schema, settings, write_yaml=write_yaml)
    schema_path = extract_schema(folder, schema)

    settings_path = write_settings(stamp_settings(settings), folder / SETTINGS_FILE_NAME)

    logger.info("Extracted %s", folder)
    return ExtractedFolder(
        folder_path=folder,
        data_path=data_path,
        schema_path=schema_path,
        settings_path=settings_path,
    )


def extract_data(
    folder: Path,
    data: DataDocument,
    schema: SchemaDocument,
    settings: SettingsFile,
    write_yaml: bool = False,
) -> Path:
    for entity in list(data.entities()):
        if not entity.name:
            logger.warning("Skipping entity without a name")
            continue
        extract_entity(folder, entity, schema, settings, write_yaml=write_yaml)

    # write back the condensed data.xml to the root of the folder
    data_path = folder / DATA_FILE_NAME
    write_xml(condense_document(data.root, folder), data_path, xml_declaration=True)
    return data_path


def extract_entity(
    folder: Path,
    entity: EntityData,
    schema: SchemaDocument,
    settings: SettingsFile,
    write_yaml: bool = False,
) -> int:
    logger.info("Processing entity %s", entity.name)
    entity_folder = entity.create_entity_folder(folder)
    records_folder = entity.create_records_folder(entity_folder)

    entity_policy = resolve_entity_policy(settings, entity.name)
    schema_entity = schema.get_entity(entity.name)

    count = 0
    for record in list(entity.records()):
        extract_record(entity, record, records_folder, entity_policy, schema_entity, settings, write_yaml=write_yaml)
        count += 1

    extract_m2m_relationships(entity, entity_folder)
    logger.debug("Extracted %d records for entity %s", count, entity.name)
    return count


def extract_record(
    entity: EntityData,
    record: Record,
    records_folder: Path,
    entity_policy: EntityPolicy,
    schema_entity: Optional[ET.Element],
    settings: SettingsFile,
    write_yaml: bool = False,
) -> Path:
    logger.debug("Processing record %s", record.id)

    # file names are derived from the values as exported, before any field is cleared
    snapshot = Record(copy.deepcopy(record.element))

    for field in list(record.fields()):
        policy = resolve_field_policy(settings, entity.name, field.name)

        if policy.remove:
            logger.debug("Removing field %s", field.name)
            record.remove_field(field)
            continue

        if field.field_type == FieldType.LOOKUP and policy.remove_lookup_entity_name:
            field.remove_lookup_entity_name()

        if policy.externalize:
            externalize_field(entity.name, snapshot, record, field, policy, records_folder, schema_entity)

    record.sort_fields(entity_policy.fields_sort_order)

    file_name_field = resolve_schema_field_name(schema_entity, entity_policy.file_name_field)
    prefix = record_file_name_prefix(snapshot, entity_policy, schema_entity)
    file_name = allocate_file_name(
        records_folder,
        prefix,
        entity_policy.extension,
        record.id,
        check_collision=file_name_field != "id" or entity_policy.file_name_suffix_field is not None,
    )

    record_path = write_xml(record.element, records_folder / file_name)
    if write_yaml:
        write_record_yaml(record, record_path)
    return record_path


def record_file_name_prefix(record: Record, entity_policy: EntityPolicy, schema_entity: Optional[ET.Element]) -> str:
    file_name_field = resolve_schema_field_name(schema_entity, entity_policy.file_name_field)
    prefix = escape_file_name(resolve_file_name_prefix(record, file_name_field))

    if entity_policy.file_name_suffix_field:
        suffix_field = resolve_schema_field_name(schema_entity, entity_policy.file_name_suffix_field)
        prefix = f"{prefix}-{escape_file_name(resolve_file_name_prefix(record, suffix_field))}"
    return prefix


def externalize_field(
    entity_name: str,
    snapshot: Record,
    record: Record,
    field: FieldData,
    policy: FieldPolicy,
    records_folder: Path,
    schema_entity: Optional[ET.Element],
) -> None:
    """Move a field value into its own file and point the field at it."""
    policy = replace(policy, file_name_field=resolve_schema_field_name(schema_entity, policy.file_name_field))

    if entity_name == ANNOTATION_ENTITY and field.name == DOCUMENT_BODY_FIELD and policy.extension == AUTO_EXTENSION:
        write_document_body(snapshot, record, field, policy, records_folder)
        return

    if entity_name == CONTENT_SNIPPET_ENTITY and field.name == CONTENT_SNIPPET_VALUE_FIELD and policy.extension == AUTO_EXTENSION:
        # snippets are either plain text or html depending on adx_type
        snippet_type = snapshot.get_field(CONTENT_SNIPPET_TYPE_FIELD)
        is_html = snippet_type is not None and snippet_type.value == CONTENT_SNIPPET_HTML_TYPE
        policy = replace(policy, extension=".html" if is_html else ".txt")
    elif policy.extension == AUTO_EXTENSION:
        logger.debug("No content type detection for %s.%s, using .txt", entity_name, field.name)
        policy = replace(policy, extension=".txt")

    write_text_field(snapshot, record, field, policy, records_folder)


def write_document_body(snapshot: Record, record: Record, field: FieldData, policy: FieldPolicy, records_folder: Path) -> None:
    """Decode an annotation's base64 documentbody into records/documentbody/<name>."""
    try:
        body = base64.b64decode(field.value or "", validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("Record %s has an invalid %s value (%s), leaving it inline", record.id, field.name, e)
        return

    folder = records_folder / DOCUMENT_BODY_FIELD
    folder.mkdir(parents=True, exist_ok=True)

    file_name_field = snapshot.get_field(ANNOTATION_FILE_NAME_FIELD)
    attachment_name = file_name_field.value if file_name_field is not None and file_name_field.value else None

    if policy.file_name_field != "id" and attachment_name:
        stem, extension = split_file_name(escape_file_name(attachment_name))
        file_name = allocate_file_name(folder, stem, extension, record.id)
    else:
        if attachment_name is None:
            logger.debug("Record %s has no %s field, naming document body by id", record.id, ANNOTATION_FILE_NAME_FIELD)
        extension = split_file_name(escape_file_name(attachment_name))[1] if attachment_name else ""
        file_name = f"{record.id}{extension}"

    write_bytes(folder / file_name, body)

    field.remove_value()
    field.set_path(join_relative_path(DOCUMENT_BODY_FIELD, file_name))
    if policy.hash:
        field.set_hash(compute_bytes_hash(body))


def write_text_field(snapshot: Record, record: Record, field: FieldData, policy: FieldPolicy, records_folder: Path) -> None:
    """Write an html-decoded field value to records/<field>/<name><extension>."""
    if policy.file_name_field == field.name:
        # a field cannot name the file its own value is moved into
        logger.debug("Field %s is its own file name source, leaving it inline", field.name)
        return

    value = html_decode(field.value or "")

    if policy.extension == ".json" and policy.format:
        try:
            value = pretty_json(value)
        except json.JSONDecodeError as e:
            logger.warning("Record %s field %s is not valid JSON (%s), writing it unformatted", record.id, field.name, e)

    folder = records_folder / field.name
    folder.mkdir(parents=True, exist_ok=True)

    prefix = escape_file_name(resolve_file_name_prefix(snapshot, policy.file_name_field))
    file_name = allocate_file_name(
        folder,
        prefix,
        policy.extension,
        record.id,
        check_collision=policy.file_name_field != "id",
    )

    write_text(folder / file_name, value)

    field.remove_value()
    field.set_path(join_relative_path(field.name, file_name))
    if policy.hash:
        field.set_hash(compute_text_hash(value))


def extract_m2m_relationships(entity: EntityData, entity_folder: Path) -> None:
    if not entity.has_m2m_relationships():
        return

    for name, relationship in list(entity.m2m_relationships()):
        folder = entity.create_m2m_folder(entity_folder, escape_file_name(name))
        source_id = escape_file_name(relationship.get("sourceid", ""))
        path = folder / f"{source_id}.xml"
        if path.exists():
            logger.warning("Overwriting m2m relationship file %s for duplicate source id", path)
        write_xml(relationship, path)


def extract_schema(folder: Path, schema: SchemaDocument) -> Path:
    for entity in list(schema.entities()):
        name = entity.get("name", "")
        entity_folder = folder / name
        if name and entity_folder.is_dir():
            write_xml(entity, entity_folder / SCHEMA_FILE_NAME)
        else:
            logger.debug("No data for entity %s, skipping schema extract", name)

    logger.debug("Creating root %s", SCHEMA_FILE_NAME)
    schema_path = folder / SCHEMA_FILE_NAME
    write_xml(condense_document(schema.root, folder), schema_path, xml_declaration=True)
    return schema_path
