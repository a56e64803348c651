"""Local filesystem deletion of trashed photos."""

import os
from pathlib import Path, PurePosixPath
from typing import Iterable

from .models import Photo
from ..logging import get_logger

logger = get_logger(__name__)


class LocalFileDeleter:
    """Removes photos from disk, resolving each relative path under ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def ensure_write_permission(self) -> None:
        """
        Raises:
            PermissionError: If the root folder cannot be modified
        """
        if not os.access(self._root, os.W_OK | os.X_OK):
            raise PermissionError(f"No write permission for folder: {self._root}")

    def resolve(self, photo: Photo) -> Path:
        """Map a photo's relative path onto the root, refusing paths that escape it."""
        rel = PurePosixPath(photo.rel_path)
        if not rel.name or rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Invalid relative path: {photo.rel_path}")
        return self._root.joinpath(*rel.parts)

    def delete(self, photos: Iterable[Photo]) -> int:
        """
        Delete the given photos, continuing past per-file failures.

        Returns:
            Number of files actually removed

        Raises:
            PermissionError: If the root folder is not writable
        """
        self.ensure_write_permission()

        deleted = 0
        for photo in photos:
            try:
                self.resolve(photo).unlink()
            except (OSError, ValueError) as exc:
                logger.error(f"Failed to delete {photo.rel_path}: {exc}")
                continue
            deleted += 1
            logger.debug(f"Deleted {photo.rel_path}")

        logger.info(f"Deleted {deleted} photos from {self._root}")
        return deleted
