from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Characters Windows refuses in file names
RESERVED_CHARACTERS = '\\/:*?"<>|'


def escape_file_name(raw: str) -> str:
    """Escape a raw field/record value for use as a single file name.

    - Each reserved character is replaced by its percent-escaped form ('/' -> '%2F').
    - Everything else, including '%' and non-ASCII text, passes through unchanged.
    """
    if raw is None:
        return ''
    if not isinstance(raw, str):
        raw = str(raw)
    return ''.join(f"%{ord(ch):02X}" if ch in RESERVED_CHARACTERS else ch for ch in raw)


def resolve_file_name_prefix(record, file_name_field: Optional[str]) -> str:
    """Return the raw (unescaped) value a file name is derived from.

    'id' names the record by its id. Any other name is looked up as a field
    of the record; a missing field falls back to the record id.
    """
    if file_name_field in (None, '', 'id'):
        return record.id

    field = record.get_field(file_name_field)
    if field is not None and field.value:
        return field.value
    return record.id


def allocate_file_name(
    folder: Path,
    prefix: str,
    extension: str,
    record_id: str,
    check_collision: bool = True,
) -> str:
    """Return a file name in `folder` that does not clobber an existing file.

    The first choice is '<prefix><extension>'. When that file already exists
    the record id is appended before the extension: '<prefix>-<id><extension>'.
    """
    extension = extension or ''
    file_name = f"{prefix}{extension}"
    if not check_collision:
        return file_name

    if (Path(folder) / file_name).exists():
        existing = file_name
        file_name = f"{prefix}-{record_id}{extension}"
        logger.warning(
            "Naming file %s in %s to avoid conflict with existing file %s",
            file_name,
            folder,
            existing,
        )
    return file_name


def split_file_name(file_name: str) -> Tuple[str, str]:
    """Split 'report.final.pdf' into ('report.final', '.pdf')."""
    stem, extension = os.path.splitext(file_name or '')
    return stem, extension


def join_relative_path(*segments: str) -> str:
    """Build the relative path stored on an externalized field.

    Always uses '/' so extracted folders diff cleanly across platforms.
    """
    return str(PurePosixPath(*segments))


def resolve_relative_path(base: Path, relative_path: str) -> Path:
    """Resolve a stored relative path (either separator) against `base`."""
    parts = [p for p in relative_path.replace('\\', '/').split('/') if p not in ('', '.')]
    return Path(base).joinpath(*parts)
