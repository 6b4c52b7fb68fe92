"""
Archive Extraction

Bhavcopies and security reports are published as .zip or .gz files. These
helpers unpack them next to the downloaded file and remove the archive.
"""

import gzip
import shutil
import zipfile
from pathlib import Path
from typing import Iterable, Optional

from core.errors import ArchiveError
from core.logging import get_logger

logger = get_logger(__name__)


def extract_archive(path: Path, folder: Optional[Path] = None, members: Optional[Iterable[str]] = None) -> Path:
    """
    Extract a .zip or .gz file and delete the archive.

    Args:
        path: Archive to extract
        folder: Destination directory (defaults to the archive's directory)
        members: For zip files, restrict extraction to these member names

    Returns:
        Path of the first extracted file (zip) or the decompressed file (gz).
        Files that are neither zip nor gz are returned unchanged.

    Raises:
        ArchiveError: If the archive is corrupt or contains none of the requested members
    """
    path = Path(path)
    folder = Path(folder) if folder else path.parent
    suffix = path.suffix.lower()

    if suffix == ".zip":
        extracted = _extract_zip(path, folder, members)
    elif suffix == ".gz":
        extracted = _extract_gzip(path, folder)
    else:
        return path

    path.unlink(missing_ok=True)
    logger.debug(f"Extracted {path.name} -> {extracted.name}")
    return extracted


def _extract_zip(path: Path, folder: Path, members: Optional[Iterable[str]]) -> Path:
    try:
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
            if members is not None:
                wanted = set(members)
                names = [n for n in names if n in wanted]
            if not names:
                raise ArchiveError(f"No matching files in {path.name}")
            for name in names:
                zf.extract(name, folder)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Corrupt zip file {path.name}: {e}") from e

    return (folder / names[0]).resolve()


def _extract_gzip(path: Path, folder: Path) -> Path:
    target = folder / path.stem
    try:
        with gzip.open(path, "rb") as src, open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
    except (OSError, EOFError) as e:
        target.unlink(missing_ok=True)
        raise ArchiveError(f"Corrupt gzip file {path.name}: {e}") from e

    return target.resolve()
