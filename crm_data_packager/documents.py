"""Read/write view over data.xml and data_schema.xml.

data.xml:
    <entities>
      <entity name="account" displayname="Account">
        <records>
          <record id="...">
            <field name="name" value="Contoso" />
            <field name="parentaccountid" value="..." lookupentity="account" lookupentityname="Fabrikam" />
          </record>
        </records>
        <m2mrelationships>
          <m2mrelationship sourceid="..." m2mrelationshipname="...">...</m2mrelationship>
        </m2mrelationships>
      </entity>
    </entities>

data_schema.xml:
    <entities>
      <entity name="account" displayname="Account" primaryidfield="accountid" primarynamefield="name">
        <fields>...</fields>
      </entity>
    </entities>

The handles below wrap ElementTree elements. The sequences they return are
lazy; materialize them (list(...)) before removing or reordering siblings.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .config import M2M_FOLDER_NAME, RECORDS_FOLDER_NAME
from .io_utils import load_xml
from .settings import FieldsSortOrder

logger = logging.getLogger(__name__)

# Entity attributes kept in the condensed root documents
CONDENSED_ENTITY_ATTRIBUTES = ("name", "displayname")


class FieldType(str, Enum):
    STANDARD = "standard"
    LOOKUP = "lookup"


class FieldData:
    def __init__(self, element: ET.Element):
        self.element = element

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    @property
    def value(self) -> Optional[str]:
        return self.element.get("value")

    @property
    def path(self) -> str:
        return self.element.get("path", "")

    @property
    def hash(self) -> Optional[str]:
        return self.element.get("hash")

    @property
    def field_type(self) -> FieldType:
        if self.element.get("lookupentity"):
            return FieldType.LOOKUP
        return FieldType.STANDARD

    def set_value(self, value: str) -> None:
        self.element.set("value", value)

    def remove_value(self) -> None:
        self.element.attrib.pop("value", None)

    def set_path(self, relative_path: str) -> None:
        self.element.set("path", relative_path)

    def remove_path(self) -> None:
        self.element.attrib.pop("path", None)

    def set_hash(self, content_hash: str) -> None:
        self.element.set("hash", content_hash)

    def remove_hash(self) -> None:
        self.element.attrib.pop("hash", None)

    def remove_lookup_entity_name(self) -> None:
        self.element.attrib.pop("lookupentityname", None)

    def __repr__(self) -> str:
        return f"FieldData(name={self.name!r})"


class Record:
    def __init__(self, element: ET.Element):
        self.element = element

    @property
    def id(self) -> str:
        return self.element.get("id", "")

    def fields(self) -> Iterator[FieldData]:
        for field in self.element.findall("field"):
            yield FieldData(field)

    def get_field(self, name: str) -> Optional[FieldData]:
        for field in self.fields():
            if field.name == name:
                return field
        return None

    def remove_field(self, field: FieldData) -> None:
        self.element.remove(field.element)

    def sort_fields(self, order: FieldsSortOrder) -> None:
        """Reorder <field> children by name. Stable; a no-op for FieldsSortOrder.NONE."""
        if order in (None, FieldsSortOrder.NONE):
            return

        fields = self.element.findall("field")
        ordered = sorted(
            fields,
            key=lambda f: f.get("name", ""),
            reverse=order == FieldsSortOrder.DESCENDING,
        )
        for field in fields:
            self.element.remove(field)
        # fields go back after any non-field children, in sorted order
        self.element.extend(ordered)

    def __repr__(self) -> str:
        return f"Record(id={self.id!r})"


class EntityData:
    def __init__(self, element: ET.Element):
        self.element = element

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    def records(self) -> Iterator[Record]:
        for record in self.element.findall("records/record"):
            yield Record(record)

    def m2m_relationships(self) -> Iterator[Tuple[str, ET.Element]]:
        """Yield (relationship name, <m2mrelationship> element) pairs in document order."""
        for relationship in self.element.findall("m2mrelationships/m2mrelationship"):
            yield relationship.get("m2mrelationshipname", ""), relationship

    def has_m2m_relationships(self) -> bool:
        container = self.element.find("m2mrelationships")
        return container is not None and len(container) > 0

    def create_entity_folder(self, target_folder) -> Path:
        folder = Path(target_folder) / self.name
        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def create_records_folder(self, entity_folder) -> Path:
        folder = Path(entity_folder) / RECORDS_FOLDER_NAME
        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def create_m2m_folder(self, entity_folder, relationship_name: str) -> Path:
        folder = Path(entity_folder) / M2M_FOLDER_NAME / relationship_name
        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def __repr__(self) -> str:
        return f"EntityData(name={self.name!r})"


class DataDocument:
    """data.xml, or the condensed copy of it left in an extracted folder."""

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def load(cls, path) -> "DataDocument":
        return cls(load_xml(path))

    def entities(self) -> Iterator[EntityData]:
        for entity in self.root.findall("entity"):
            yield EntityData(entity)

    def remove_entity(self, entity: EntityData) -> None:
        self.root.remove(entity.element)


class SchemaDocument:
    """data_schema.xml."""

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def load(cls, path) -> "SchemaDocument":
        return cls(load_xml(path))

    def entities(self) -> Iterator[ET.Element]:
        return iter(self.root.findall("entity"))

    def get_entity(self, entity_name: str) -> Optional[ET.Element]:
        for entity in self.root.findall("entity"):
            if entity.get("name") == entity_name:
                return entity
        return None

    def replace_entity(self, old: ET.Element, new: ET.Element) -> None:
        index = list(self.root).index(old)
        self.root.remove(old)
        self.root.insert(index, new)

    def remove_entity(self, entity: ET.Element) -> None:
        self.root.remove(entity)


def resolve_schema_field_name(schema_entity: Optional[ET.Element], file_name_field: str) -> str:
    """Map 'primaryidfield'/'primarynamefield' to the field named by the schema.

    Any other value, or a missing schema entry/attribute, is returned unchanged.
    """
    if file_name_field in ("primaryidfield", "primarynamefield") and schema_entity is not None:
        resolved = schema_entity.get(file_name_field)
        if resolved:
            return resolved
    return file_name_field


def condense_document(root: ET.Element, folder) -> ET.Element:
    """Return a stripped copy of a data or schema document for an extracted folder.

    Entities without a folder under `folder` are dropped. The rest keep only
    their name/displayname attributes and lose all child content.
    """
    folder = Path(folder)
    condensed = copy.deepcopy(root)

    for entity in list(condensed.findall("entity")):
        name = entity.get("name", "")
        if not name or not (folder / name).is_dir():
            logger.debug("Removing %s from root document due to no data for entity", name)
            condensed.remove(entity)
            continue

        for attribute in [a for a in entity.attrib if a not in CONDENSED_ENTITY_ATTRIBUTES]:
            del entity.attrib[attribute]
        for child in list(entity):
            entity.remove(child)
        entity.text = None

    return condensed


def entity_names(root: ET.Element) -> List[str]:
    return [entity.get("name", "") for entity in root.findall("entity")]
