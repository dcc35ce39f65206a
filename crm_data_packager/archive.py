"""Archive (zip) boundary around the extractor and packer.

Data exports are zip files whose root holds data.xml, data_schema.xml and
[Content_Types].xml.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .exceptions import DataFileNotFoundError, FatalIOError
from .extractor import ExtractedFolder, extract_folder
from .packer import pack_folder
from .settings import load_settings_or_default

logger = logging.getLogger(__name__)


@dataclass
class DataFile:
    """A packed export: a .zip file or a folder holding the export files."""
    file_path: Path


def is_archive(path) -> bool:
    path = Path(path)
    return path.is_file() and path.suffix.lower() == ".zip"


def remove_folder(folder: Path) -> None:
    if folder.exists():
        logger.debug("Deleting existing folder %s", folder)
        shutil.rmtree(folder)


def extract_archive(archive_path, folder) -> Path:
    """Unzip `archive_path` into `folder`, replacing anything already there."""
    archive_path = Path(archive_path)
    folder = Path(folder)
    remove_folder(folder)

    logger.debug("Extracting zip file to folder %s", folder)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(folder)
    except zipfile.BadZipFile as e:
        raise FatalIOError(f"{archive_path} is not a valid zip file: {e}") from e
    return folder


def create_archive(folder, archive_path) -> Path:
    """Zip the contents of `folder` (entries at the archive root) into `archive_path`."""
    folder = Path(folder)
    archive_path = Path(archive_path)
    if archive_path.exists():
        logger.debug("Deleting existing file %s", archive_path)
        archive_path.unlink()
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Writing file %s", archive_path)
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(folder.rglob("*")):
            if path.is_file():
                archive.write(path, path.relative_to(folder).as_posix())
    return archive_path


def extract_data_file(source, target_folder, settings_file_path=None, write_yaml: bool = False) -> ExtractedFolder:
    """Extract an export archive (or an unzipped export folder) into `target_folder`.

    The target folder is deleted first unless it is the source folder itself.
    """
    source = Path(source)
    target = Path(target_folder)

    # read settings before the target folder, which may hold them, is replaced
    settings = load_settings_or_default(settings_file_path)

    if is_archive(source):
        extract_archive(source, target)
    elif source.is_dir():
        if source.resolve() != target.resolve():
            remove_folder(target)
            logger.debug("Copying source folder to folder %s", target)
            shutil.copytree(source, target)
    else:
        raise DataFileNotFoundError(source, "not a .zip data file or a folder")

    return extract_folder(target, settings, write_yaml=write_yaml)


def pack_data_folder(source_folder, target) -> DataFile:
    """Pack an extracted folder into a .zip data file, or into a plain folder."""
    source = Path(source_folder)
    target = Path(target)
    if not source.is_dir():
        raise DataFileNotFoundError(source, "folder not found")

    if target.suffix.lower() != ".zip":
        logger.debug("Creating folder %s", target)
        pack_folder(source, target)
        return DataFile(file_path=target)

    with tempfile.TemporaryDirectory(prefix=f"{target.stem}-") as temp_dir:
        logger.debug("Packing into temporary folder %s", temp_dir)
        pack_folder(source, temp_dir)
        create_archive(temp_dir, target)

    return DataFile(file_path=target)
