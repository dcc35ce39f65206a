"""
Tests for settings precedence.
"""

from crm_data_packager.policy import (
    ENTITY_POLICY_ATTRIBUTES,
    EntityPolicy,
    FieldPolicy,
    merge,
    resolve_entity_policy,
    requests_file,
    resolve_field_policy,
)
from crm_data_packager.settings import EntitySettings, FieldSettings, FieldsSortOrder, SettingsFile


def layered_settings() -> SettingsFile:
    """Each level sets a different subset of attributes."""
    return SettingsFile.model_validate(
        {
            "entities": [
                {
                    "entity": "Account",
                    "fileNameField": "name",
                    "fields": [
                        {"field": "name", "extension": ".md"},
                        {"field": "*", "format": True},
                    ],
                },
                {
                    "entity": "*",
                    "extension": ".yml",
                    "fieldsSortOrder": "descending",
                    "fields": [
                        {"field": "name", "hash": False, "extension": ".html"},
                        {"field": "*", "removeLookupEntityName": True, "format": False, "fileNameField": "title"},
                    ],
                },
            ]
        }
    )


class TestMerge:
    """Test the attribute-wise merge."""

    def test_specific_wins_and_gaps_are_filled(self):
        specific = EntitySettings(entity="a", extension=".json")
        general = EntitySettings(entity="*", extension=".xml", file_name_field="name")

        merged = merge(specific, general, ENTITY_POLICY_ATTRIBUTES)

        assert merged.extension == ".json"
        assert merged.file_name_field == "name"
        assert merged.entity == "a"

    def test_inputs_are_not_modified(self):
        specific = EntitySettings(entity="a")
        general = EntitySettings(entity="*", extension=".xml")

        merge(specific, general, ENTITY_POLICY_ATTRIBUTES)

        assert specific.extension is None

    def test_missing_sides(self):
        general = EntitySettings(entity="*")
        assert merge(None, general, ENTITY_POLICY_ATTRIBUTES) is general
        assert merge(general, None, ENTITY_POLICY_ATTRIBUTES) is general
        assert merge(None, None, ENTITY_POLICY_ATTRIBUTES) is None


class TestFieldPolicy:
    """Test the four-way field precedence."""

    def test_each_attribute_resolves_to_nearest_level(self):
        policy = resolve_field_policy(layered_settings(), "Account", "name")

        assert policy.extension == ".md"  # named entity + named field
        assert policy.format is True  # named entity + wildcard field
        assert policy.hash is False  # wildcard entity + named field
        assert policy.remove_lookup_entity_name is True  # wildcard entity + wildcard field
        assert policy.file_name_field == "title"  # wildcard entity + wildcard field
        assert policy.remove is False  # default
        assert policy.externalize is True

    def test_other_field_of_named_entity(self):
        policy = resolve_field_policy(layered_settings(), "Account", "phone")

        assert policy.format is True
        assert policy.hash is True
        assert policy.extension == ".txt"
        assert policy.file_name_field == "title"

    def test_unknown_entity_uses_wildcard_entity(self):
        policy = resolve_field_policy(layered_settings(), "Contact", "name")

        assert policy.extension == ".html"
        assert policy.hash is False
        assert policy.format is False

    def test_no_match_gives_defaults(self):
        policy = resolve_field_policy(SettingsFile(), "Contact", "name")

        assert policy == FieldPolicy(entity="Contact", field="name")
        assert policy.file_name_field == "id"
        assert policy.extension == ".txt"
        assert policy.hash is True
        assert policy.externalize is False

    def test_wildcard_field_flags_alone_do_not_externalize(self):
        settings = SettingsFile(
            entities=[EntitySettings(entity="*", fields=[FieldSettings(field="*", hash=False, remove_lookup_entity_name=True)])]
        )
        assert resolve_field_policy(settings, "Account", "name").externalize is False

    def test_bare_named_field_externalizes_with_defaults(self):
        settings = SettingsFile(entities=[EntitySettings(entity="Account", fields=[FieldSettings(field="notes")])])
        policy = resolve_field_policy(settings, "Account", "notes")

        assert policy.externalize is True
        assert policy.file_name_field == "id"
        assert policy.extension == ".txt"

    def test_named_field_with_only_hash_externalizes(self):
        settings = SettingsFile(entities=[EntitySettings(entity="*", fields=[FieldSettings(field="notes", hash=False)])])
        policy = resolve_field_policy(settings, "Account", "notes")

        assert policy.externalize is True
        assert policy.hash is False

    def test_named_lookup_or_remove_entries_stay_inline(self):
        settings = SettingsFile(
            entities=[
                EntitySettings(
                    entity="Account",
                    fields=[
                        FieldSettings(field="parentaccountid", remove_lookup_entity_name=True),
                        FieldSettings(field="secret", remove=True),
                    ],
                )
            ]
        )

        assert resolve_field_policy(settings, "Account", "parentaccountid").externalize is False
        assert resolve_field_policy(settings, "Account", "secret").externalize is False

    def test_requests_file(self):
        assert requests_file(None) is False
        assert requests_file(FieldSettings(field="a")) is True
        assert requests_file(FieldSettings(field="a", remove=True)) is False
        assert requests_file(FieldSettings(field="a", remove_lookup_entity_name=True, extension=".txt")) is True

    def test_extension_alone_externalizes(self):
        settings = SettingsFile(
            entities=[EntitySettings(entity="Account", fields=[FieldSettings(field="notes", extension=".md")])]
        )
        policy = resolve_field_policy(settings, "Account", "notes")
        assert policy.externalize is True
        assert policy.file_name_field == "id"


class TestEntityPolicy:
    """Test entity precedence."""

    def test_named_then_wildcard_then_default(self):
        policy = resolve_entity_policy(layered_settings(), "Account")

        assert policy.file_name_field == "name"
        assert policy.extension == ".yml"
        assert policy.fields_sort_order == FieldsSortOrder.DESCENDING
        assert policy.file_name_suffix_field is None

    def test_defaults(self):
        assert resolve_entity_policy(SettingsFile(), "Account") == EntityPolicy(entity="Account")
        policy = resolve_entity_policy(SettingsFile(), "Account")
        assert policy.file_name_field == "id"
        assert policy.extension == ".xml"
        assert policy.fields_sort_order == FieldsSortOrder.NONE
