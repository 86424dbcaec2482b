"""
Discovery of metering snapshot files and cleanup once they are ingested.

Every file ending in the metering extension below the root path is a
metering database. The VPSA a file belongs to is the name of the
directory that holds it.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from metering_ingest.errors import CleanupError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class SourceFile:
    path: str
    source_id: str
    tables: list[str] = field(default_factory=list)


def source_id_from_path(path: str) -> str:
    parent = Path(path).parent.name
    if not parent:
        raise NotFoundError(f"Cannot derive a VPSA name from path: {path}")
    return parent


def find_metering_files(root: str, extension: str = ".db") -> list[SourceFile]:
    """
    Walk ``root`` and return a SourceFile for every metering database.

    Raises:
        NotFoundError: nothing was found, or a file sits too shallow to
            name its VPSA.
    """
    paths = []
    if os.path.isfile(root):
        if root.endswith(extension):
            paths.append(root)
    else:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error):
            dirnames.sort()
            for name in sorted(filenames):
                if name.endswith(extension):
                    path = os.path.join(dirpath, name)
                    logger.debug("found metering file: %s", path)
                    paths.append(path)

    if not paths:
        raise NotFoundError(f"Could not locate any metering files in location: {root}")

    return [SourceFile(path=path, source_id=source_id_from_path(path)) for path in paths]


def _walk_error(error: OSError) -> None:
    raise NotFoundError(f"Could not walk path: {error.filename}") from error


def is_dir_empty(path: str) -> bool:
    with os.scandir(path) as entries:
        return next(entries, None) is None


def remove_source_file(source: SourceFile) -> bool:
    """
    Delete an ingested file, then its directory if nothing is left in it.

    Returns:
        True when the parent directory was removed as well.

    Raises:
        CleanupError: either removal failed.
    """
    try:
        os.remove(source.path)
    except OSError as e:
        raise CleanupError(f"Could not remove metering file {source.path}: {e}") from e

    parent = os.path.dirname(source.path) or "."
    try:
        if not is_dir_empty(parent):
            return False
        os.rmdir(parent)
    except OSError as e:
        raise CleanupError(f"Could not remove directory {parent}: {e}") from e

    logger.debug("removed empty directory: %s", parent)
    return True
