"""Zip helpers for theme import and export."""

import logging
import os
import tempfile
import time
import zipfile
from collections.abc import Iterator
from pathlib import Path

from .constants import APP_NAME
from .exceptions import ValidationError

logger = logging.getLogger(APP_NAME)


def temporary_filename(extension: str) -> Path:
    """Returns a fresh path in the system temp directory (the file is not created)."""
    return Path(tempfile.gettempdir()) / f"jumpseller-{time.time_ns()}{extension}"


def iter_folder(folder: Path) -> Iterator[tuple[str, Path]]:
    """Yields (archive name, filesystem path) for every file under a folder.

    Hidden files are included and symlinks are followed.
    """
    for current, dirs, files in os.walk(folder, followlinks=True):
        dirs.sort()
        for name in sorted(files):
            fs_path = Path(current) / name
            if fs_path.is_file():
                yield fs_path.relative_to(folder).as_posix(), fs_path.resolve()


def zip_folder(folder: Path) -> Path:
    """Zips an entire folder into a temporary archive and returns its path."""
    output = temporary_filename(".zip")
    with zipfile.ZipFile(
        output, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as archive:
        for name, fs_path in iter_folder(folder):
            archive.write(fs_path, arcname=name)
    logger.debug(f"Zipped {folder} into {output}")
    return output


def unzip_folder(zip_path: Path, destination: Path) -> None:
    """Extracts an archive into a folder, refusing entries that escape it.

    Raises:
        ValidationError: If an entry would be written outside the destination.
    """
    root = destination.resolve()
    with zipfile.ZipFile(zip_path) as archive:
        for member in archive.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise ValidationError(f"Unsafe path in archive: {member}")
        archive.extractall(root)
    logger.debug(f"Extracted {zip_path} into {root}")
