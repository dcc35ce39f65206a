"""
Configuration for CRM Data Packager.

Runtime options come from the environment; the on-disk layout names and
the reserved entity/field names are fixed.
"""

import os
from pathlib import Path
from typing import Optional

# Export archive / extracted folder layout
DATA_FILE_NAME = "data.xml"
SCHEMA_FILE_NAME = "data_schema.xml"
SETTINGS_FILE_NAME = "settings.json"
CONTENT_TYPES_FILE_NAME = "[Content_Types].xml"
RECORDS_FOLDER_NAME = "records"
M2M_FOLDER_NAME = "m2mrelationships"

# Notes store their attachment as base64 in annotation.documentbody
ANNOTATION_ENTITY = "annotation"
DOCUMENT_BODY_FIELD = "documentbody"
ANNOTATION_FILE_NAME_FIELD = "filename"

# Portal content snippets are either plain text or html
CONTENT_SNIPPET_ENTITY = "adx_contentsnippet"
CONTENT_SNIPPET_VALUE_FIELD = "adx_value"
CONTENT_SNIPPET_TYPE_FIELD = "adx_type"
CONTENT_SNIPPET_HTML_TYPE = "756150001"

WILDCARD = "*"
AUTO_EXTENSION = "auto"


class Config:
    # Logging
    log_level = os.getenv("CRM_DATA_PACKAGER_LOG_LEVEL", "INFO").upper()
    log_file = os.getenv("CRM_DATA_PACKAGER_LOG_FILE")

    def get_log_file_path(self) -> Optional[Path]:
        return Path(self.log_file) if self.log_file else None


# Singleton instance
_config = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config
