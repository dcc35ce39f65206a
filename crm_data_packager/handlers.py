from __future__ import annotations

import logging
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Any, Dict, Optional

from .archive import create_archive, extract_archive, extract_data_file, pack_data_folder
from .config import DATA_FILE_NAME, SETTINGS_FILE_NAME
from .documents import DataDocument

logger = logging.getLogger(__name__)


def uploaded_path(file_obj) -> Optional[Path]:
    """Resolve an uploaded file (tempfile wrapper or plain path) to a Path."""
    if file_obj is None:
        return None
    path = file_obj.name if hasattr(file_obj, 'name') else file_obj
    return Path(path)


def new_work_dir() -> Path:
    return Path(tempfile.mkdtemp(prefix="crm-data-packager-"))


def find_extracted_root(folder: Path) -> Path:
    """Accept archives that wrap the extracted folder in a single top-level folder."""
    if (folder / SETTINGS_FILE_NAME).is_file():
        return folder
    children = [p for p in folder.iterdir() if p.is_dir()]
    if len(children) == 1 and (children[0] / SETTINGS_FILE_NAME).is_file():
        return children[0]
    return folder


def summarize_export(file_obj):
    """Count records per entity in an uploaded export, for the preview pane."""
    path = uploaded_path(file_obj)
    if path is None:
        return None, "No file uploaded."

    try:
        with zipfile.ZipFile(path) as archive:
            root = ET.fromstring(archive.read(DATA_FILE_NAME))
    except KeyError:
        return None, f"The archive has no {DATA_FILE_NAME}."
    except (zipfile.BadZipFile, ET.ParseError, OSError) as e:
        return None, f"Error reading export: {str(e)}"

    summary: Dict[str, Any] = {}
    for entity in DataDocument(root).entities():
        summary[entity.name] = sum(1 for _ in entity.records())
    return summary, f"Successfully loaded. Found {len(summary)} entities."


def extract_export_handler(file_obj, settings_obj=None, write_yaml=False):
    source = uploaded_path(file_obj)
    if source is None:
        return None, "No data export uploaded."

    settings_path = uploaded_path(settings_obj)
    work_dir = new_work_dir()
    target = work_dir / source.stem

    try:
        folder = extract_data_file(source, target, settings_path, write_yaml=bool(write_yaml))
        archive_path = create_archive(folder.folder_path, work_dir / f"{source.stem}-extracted.zip")
    except Exception as e:
        logger.error("Extract failed: %s", e)
        return None, f"Error during extract: {str(e)}"

    entity_count = sum(1 for p in folder.folder_path.iterdir() if p.is_dir())
    return str(archive_path), f"Extract successful! {entity_count} entity folders written."


def pack_folder_handler(file_obj, file_name=None):
    source = uploaded_path(file_obj)
    if source is None:
        return None, "No extracted folder archive uploaded."

    if not file_name or not file_name.strip():
        file_name = f"{source.stem}-packed"
    file_name = file_name.strip()
    if not file_name.lower().endswith('.zip'):
        file_name += '.zip'

    work_dir = new_work_dir()

    try:
        folder = find_extracted_root(extract_archive(source, work_dir / "extracted"))
        data_file = pack_data_folder(folder, work_dir / file_name)
    except Exception as e:
        logger.error("Pack failed: %s", e)
        return None, f"Error during pack: {str(e)}"

    return str(data_file.file_path), f"Pack successful! Saved to {data_file.file_path}"
