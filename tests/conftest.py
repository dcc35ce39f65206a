"""
Shared fixtures: a small CRM data export written into tmp_path.

Field values in data.xml are html-encoded inside the XML attribute, the
way the export tool writes them, so the parsed attribute of `description`
is '&lt;p&gt;...'.
"""

import json
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path

import pytest

DATA_XML = """<?xml version="1.0" encoding="utf-8"?>
<entities timestamp="2024-05-01T10:00:00.0000000Z">
  <entity name="account" displayname="Account">
    <records>
      <record id="a1">
        <field name="accountid" value="a1" />
        <field name="name" value="Contoso" />
        <field name="description" value="&amp;lt;p&amp;gt;Hello &amp;amp;amp; welcome&amp;lt;/p&amp;gt;" />
        <field name="settings" value="{&amp;quot;theme&amp;quot;:&amp;quot;dark&amp;quot;,&amp;quot;tabs&amp;quot;:[1,2]}" />
        <field name="secret" value="hunter2" />
      </record>
      <record id="a2">
        <field name="accountid" value="a2" />
        <field name="name" value="Fabrikam" />
        <field name="parentaccountid" value="a1" lookupentity="account" lookupentityname="Contoso" />
      </record>
      <record id="a3">
        <field name="accountid" value="a3" />
        <field name="name" value="Contoso" />
        <field name="description" value="Second Contoso" />
      </record>
    </records>
    <m2mrelationships>
      <m2mrelationship sourceid="a1" targetentityname="contact" targetentitynameidfield="contactid" m2mrelationshipname="account_contacts">
        <targetids>
          <targetid>c1</targetid>
          <targetid>c2</targetid>
        </targetids>
      </m2mrelationship>
    </m2mrelationships>
  </entity>
  <entity name="annotation" displayname="Note">
    <records>
      <record id="n1">
        <field name="subject" value="Greeting" />
        <field name="filename" value="hello.txt" />
        <field name="documentbody" value="SGVsbG8=" />
      </record>
      <record id="n2">
        <field name="subject" value="No file name" />
        <field name="documentbody" value="V29ybGQ=" />
      </record>
    </records>
    <m2mrelationships />
  </entity>
  <entity name="adx_contentsnippet" displayname="Content Snippet">
    <records>
      <record id="s1">
        <field name="adx_name" value="Header" />
        <field name="adx_type" value="756150001" />
        <field name="adx_value" value="&amp;lt;b&amp;gt;Hi&amp;lt;/b&amp;gt;" />
      </record>
      <record id="s2">
        <field name="adx_name" value="Footer" />
        <field name="adx_type" value="756150000" />
        <field name="adx_value" value="Plain text" />
      </record>
    </records>
    <m2mrelationships />
  </entity>
</entities>
"""

SCHEMA_XML = """<?xml version="1.0" encoding="utf-8"?>
<entities>
  <entity name="account" displayname="Account" etc="1" primaryidfield="accountid" primarynamefield="name" disableplugins="false">
    <fields>
      <field displayname="Account" name="accountid" type="guid" primaryKey="true" />
      <field displayname="Account Name" name="name" type="string" />
    </fields>
    <relationships>
      <relationship name="account_contacts" manyToMany="true" relatedEntityName="account_contacts" />
    </relationships>
  </entity>
  <entity name="annotation" displayname="Note" etc="5" primaryidfield="annotationid" primarynamefield="subject" disableplugins="false">
    <fields>
      <field displayname="Document" name="documentbody" type="string" />
    </fields>
  </entity>
  <entity name="adx_contentsnippet" displayname="Content Snippet" etc="10000" primaryidfield="adx_contentsnippetid" primarynamefield="adx_name" disableplugins="false">
    <fields>
      <field displayname="Value" name="adx_value" type="memo" />
    </fields>
  </entity>
  <entity name="contact" displayname="Contact" etc="2" primaryidfield="contactid" primarynamefield="fullname" disableplugins="false">
    <fields />
  </entity>
</entities>
"""

CONTENT_TYPES_XML = """<?xml version="1.0" encoding="utf-8"?><Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types"><Default Extension="xml" ContentType="application/octet-stream" /></Types>"""

SETTINGS = {
    "entities": [
        {
            "entity": "account",
            "fileNameField": "primarynamefield",
            "fieldsSortOrder": "ascending",
            "fields": [
                {"field": "description", "extension": ".html", "fileNameField": "name"},
                {"field": "settings", "extension": ".json", "format": True},
                {"field": "parentaccountid", "removeLookupEntityName": True},
                {"field": "secret", "remove": True},
            ],
        },
        {
            "entity": "annotation",
            "fields": [{"field": "documentbody", "extension": "auto", "fileNameField": "filename"}],
        },
        {
            "entity": "adx_contentsnippet",
            "fields": [{"field": "adx_value", "extension": "auto"}],
        },
        {
            "entity": "*",
            "fields": [{"field": "*", "hash": True}],
        },
    ]
}


def write_export(folder: Path) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "data.xml").write_text(DATA_XML, encoding="utf-8")
    (folder / "data_schema.xml").write_text(SCHEMA_XML, encoding="utf-8")
    (folder / "[Content_Types].xml").write_text(CONTENT_TYPES_XML, encoding="utf-8")
    return folder


def canonical_records(root: ET.Element) -> dict:
    """{entity: {record id: {field name: attributes}}} ignoring order and whitespace."""
    result = {}
    for entity in root.findall("entity"):
        records = {}
        for record in entity.findall("records/record"):
            records[record.get("id")] = {f.get("name"): dict(f.attrib) for f in record.findall("field")}
        result[entity.get("name")] = records
    return result


def canonical_m2m(root: ET.Element) -> dict:
    result = {}
    for entity in root.findall("entity"):
        links = []
        for relationship in entity.findall("m2mrelationships/m2mrelationship"):
            targets = [t.text for t in relationship.findall("targetids/targetid")]
            links.append((relationship.get("m2mrelationshipname"), relationship.get("sourceid"), targets))
        result[entity.get("name")] = sorted(links)
    return result


@pytest.fixture
def export_folder(tmp_path):
    """An unzipped data export."""
    return write_export(tmp_path / "export")


@pytest.fixture
def export_zip(tmp_path):
    """A zipped data export."""
    folder = write_export(tmp_path / "export-src")
    archive_path = tmp_path / "data.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        for name in ("data.xml", "data_schema.xml", "[Content_Types].xml"):
            archive.write(folder / name, name)
    return archive_path


@pytest.fixture
def settings_path(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(SETTINGS, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def original_data_root():
    return ET.fromstring(DATA_XML.split("?>", 1)[1].strip())


@pytest.fixture
def original_schema_root():
    return ET.fromstring(SCHEMA_XML.split("?>", 1)[1].strip())
