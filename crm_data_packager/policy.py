"""Resolve settings entries into one effective policy per entity and field.

Precedence for field attributes, most specific first:
    named entity + named field
    named entity + '*' field
    '*' entity + named field
    '*' entity + '*' field
    built-in default

Each attribute is inherited on its own, so a named field that only sets
`extension` still picks up `hash` from a wildcard entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TypeVar

from pydantic import BaseModel

from .config import WILDCARD
from .settings import EntitySettings, FieldSettings, FieldsSortOrder, SettingsFile

SettingsT = TypeVar("SettingsT", bound=BaseModel)

# Attributes that carry policy (the rest identify the entry or hold children)
ENTITY_POLICY_ATTRIBUTES = ("file_name_field", "file_name_suffix_field", "extension", "fields_sort_order")
FIELD_POLICY_ATTRIBUTES = ("file_name_field", "extension", "format", "hash", "remove_lookup_entity_name", "remove")


@dataclass(frozen=True)
class EntityPolicy:
    entity: str
    file_name_field: str = "id"
    file_name_suffix_field: Optional[str] = None
    extension: str = ".xml"
    fields_sort_order: FieldsSortOrder = FieldsSortOrder.NONE


@dataclass(frozen=True)
class FieldPolicy:
    """Effective settings for one (entity, field) pair.

    `externalize` is True when `file_name_field` or `extension` was set by a
    settings entry, or when a named field entry asks for a file (see
    `requests_file`).
    """
    entity: str
    field: str
    file_name_field: str = "id"
    extension: str = ".txt"
    format: bool = False
    hash: bool = True
    remove_lookup_entity_name: bool = False
    remove: bool = False
    externalize: bool = False


def merge(specific: Optional[SettingsT], general: Optional[SettingsT], attributes) -> Optional[SettingsT]:
    """Fill every unset attribute of `specific` from `general`.

    Pure: neither argument is modified. Either side may be None.
    """
    if specific is None:
        return general
    if general is None:
        return specific

    inherited = {
        name: getattr(general, name)
        for name in attributes
        if getattr(specific, name) is None and getattr(general, name) is not None
    }
    return specific.model_copy(update=inherited) if inherited else specific


def _find_field(entity: Optional[EntitySettings], name: str) -> Optional[FieldSettings]:
    if entity is None:
        return None
    return entity.get_field(name)


def resolve_entity_settings(settings: SettingsFile, entity_name: str) -> Optional[EntitySettings]:
    """Merge the named entity entry over the wildcard entry; None when neither exists."""
    named = settings.get_entity(entity_name) if entity_name != WILDCARD else None
    return merge(named, settings.get_entity(WILDCARD), ENTITY_POLICY_ATTRIBUTES)


def _field_candidates(settings: SettingsFile, entity_name: str, field_name: str):
    named_entity = settings.get_entity(entity_name) if entity_name != WILDCARD else None
    wildcard_entity = settings.get_entity(WILDCARD)

    return [
        _find_field(named_entity, field_name) if field_name != WILDCARD else None,
        _find_field(named_entity, WILDCARD),
        _find_field(wildcard_entity, field_name) if field_name != WILDCARD else None,
        _find_field(wildcard_entity, WILDCARD),
    ]


def resolve_field_settings(settings: SettingsFile, entity_name: str, field_name: str) -> Optional[FieldSettings]:
    resolved = None
    for candidate in reversed(_field_candidates(settings, entity_name, field_name)):
        resolved = merge(candidate, resolved, FIELD_POLICY_ATTRIBUTES)
    return resolved


def requests_file(entry: Optional[FieldSettings]) -> bool:
    """True for a named field entry that moves the value into a file.

    Entries that only remove the field or strip its lookup entity name
    leave the value inline.
    """
    if entry is None:
        return False
    if entry.file_name_field is not None or entry.extension is not None:
        return True
    return not (entry.remove or entry.remove_lookup_entity_name)


def resolve_entity_policy(settings: SettingsFile, entity_name: str) -> EntityPolicy:
    merged = resolve_entity_settings(settings, entity_name)
    policy = EntityPolicy(entity=entity_name)
    if merged is None:
        return policy

    return EntityPolicy(
        entity=entity_name,
        file_name_field=merged.file_name_field or policy.file_name_field,
        file_name_suffix_field=merged.file_name_suffix_field or None,
        extension=merged.extension or policy.extension,
        fields_sort_order=merged.fields_sort_order or policy.fields_sort_order,
    )


def resolve_field_policy(settings: SettingsFile, entity_name: str, field_name: str) -> FieldPolicy:
    candidates = _field_candidates(settings, entity_name, field_name)
    merged = resolve_field_settings(settings, entity_name, field_name)
    policy = FieldPolicy(entity=entity_name, field=field_name)
    if merged is None:
        return policy

    def pick(name):
        value = getattr(merged, name)
        return getattr(policy, name) if value is None else value

    # wildcard field entries alone only externalize when they name a file
    named_entries = (candidates[0], candidates[2])
    externalize = (
        merged.file_name_field is not None
        or merged.extension is not None
        or any(requests_file(entry) for entry in named_entries)
    )

    return FieldPolicy(
        entity=entity_name,
        field=field_name,
        file_name_field=pick("file_name_field"),
        extension=pick("extension"),
        format=pick("format"),
        hash=pick("hash"),
        remove_lookup_entity_name=pick("remove_lookup_entity_name"),
        remove=pick("remove"),
        externalize=externalize,
    )
