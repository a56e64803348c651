"""Folder enumeration: turns a directory tree into ``Photo`` records."""

from pathlib import Path
from typing import List

from .models import Photo
from ..logging import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = frozenset({
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".webp",
    ".bmp",
    ".tiff",
    ".heic",
    ".heif",
})


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def scan_folder(root: Path, recursive: bool = True) -> List[Photo]:
    """
    Collect every supported image below ``root``.

    Hidden files and files inside hidden directories are skipped. Photos
    are ordered by relative path and identified by it, so ids are stable
    across scans of the same folder.

    Args:
        root: Folder chosen by the user
        recursive: Whether to descend into sub-folders

    Returns:
        List of Photo records whose ``source`` is the file path

    Raises:
        FileNotFoundError: If ``root`` does not exist
        NotADirectoryError: If ``root`` is not a directory
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(root)
    if not root.is_dir():
        raise NotADirectoryError(root)

    candidates = root.rglob("*") if recursive else root.iterdir()

    photos: List[Photo] = []
    for path in candidates:
        rel = path.relative_to(root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if not path.is_file() or not is_supported_image(path):
            continue

        rel_path = rel.as_posix()
        photos.append(Photo(
            id=rel_path,
            name=path.name,
            rel_path=rel_path,
            size_bytes=path.stat().st_size,
            source=path,
        ))

    photos.sort(key=lambda photo: photo.rel_path)
    logger.info(f"Found {len(photos)} photos under {root}")
    return photos
