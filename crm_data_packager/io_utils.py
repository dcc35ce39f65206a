from __future__ import annotations

import copy
import hashlib
import html
import json
import logging
import re
import xml.etree.ElementTree as ET
from html.entities import html5
from pathlib import Path

from .exceptions import DataFileNotFoundError, DocumentParseError

logger = logging.getLogger(__name__)

XML_INDENT = "  "

# character references terminated by a semicolon; bare "&name" is left alone
CHARACTER_REFERENCE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")


def load_xml(path) -> ET.Element:
    """Parse an XML file and return its root element."""
    path = Path(path)
    if not path.is_file():
        raise DataFileNotFoundError(path)

    logger.debug("Loading file %s", path)
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise DocumentParseError(path, str(e)) from e


def format_xml(element: ET.Element, xml_declaration: bool = False) -> str:
    """Serialize an element indented by two spaces.

    The element itself is left untouched; indentation is applied to a copy.
    """
    pretty = copy.deepcopy(element)
    pretty.tail = None
    ET.indent(pretty, space=XML_INDENT)
    body = ET.tostring(pretty, encoding="unicode", short_empty_elements=True)
    if xml_declaration:
        return '<?xml version="1.0" encoding="utf-8"?>\n' + body + "\n"
    return body + "\n"


def write_xml(element: ET.Element, path, xml_declaration: bool = False) -> Path:
    return write_text(path, format_xml(element, xml_declaration=xml_declaration))


def read_text(path) -> str:
    path = Path(path)
    logger.debug("Loading file %s", path)
    # newline='' keeps the exact line endings of hand-edited files
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()


def write_text(path, text: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Writing file %s", path)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    return path


def read_bytes(path) -> bytes:
    path = Path(path)
    logger.debug("Loading file %s", path)
    return path.read_bytes()


def write_bytes(path, data: bytes) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Writing file %s", path)
    path.write_bytes(data)
    return path


def compute_bytes_hash(data: bytes) -> str:
    """MD5 of the content as upper-case hex. Used for change detection only."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest().upper()


def compute_text_hash(text: str) -> str:
    return compute_bytes_hash(text.encode("utf-8"))


def pretty_json(text: str) -> str:
    return json.dumps(json.loads(text), indent=2, ensure_ascii=False)


def compact_json(text: str) -> str:
    return json.dumps(json.loads(text), separators=(",", ":"), ensure_ascii=False)


def _decode_reference(match: re.Match) -> str:
    reference = match.group(1)
    if reference.startswith("#"):
        return html.unescape(match.group(0))
    return html5.get(f"{reference};", match.group(0))


def html_decode(text: str) -> str:
    """Decode `&name;` and `&#N;` references. Text such as `?a=1&region=us` is kept as is."""
    return CHARACTER_REFERENCE.sub(_decode_reference, text)


def html_encode(text: str) -> str:
    """HTML-encode a field value, writing apostrophes as `&#39;`."""
    return html.escape(text, quote=True).replace("&#x27;", "&#39;")
