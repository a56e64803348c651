"""Hand trashed photos to a deletion provider, or write a manual deletion plan."""

import sys
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence

from ..library.models import DecisionMap, Photo
from ..logging import get_logger
from .stats import get_trash_photos

logger = get_logger(__name__)

FILE_LIST_NAME = "files-to-delete.txt"

UNIX_SCRIPT = """#!/bin/bash
# Delete files listed in files-to-delete.txt
# Usage: ./delete-files.sh <base-directory>

if [ -z "$1" ]; then
    echo "Usage: $0 <base-directory>"
    exit 1
fi

BASE_DIR="$1"
FILE_LIST="files-to-delete.txt"

if [ ! -f "$FILE_LIST" ]; then
    echo "Error: $FILE_LIST not found."
    exit 1
fi

while IFS= read -r file; do
    if [ -n "$file" ]; then
        FULL_PATH="$BASE_DIR/$file"
        if [ -f "$FULL_PATH" ]; then
            rm "$FULL_PATH"
            echo "Deleted: $FULL_PATH"
        else
            echo "Warning: File not found: $FULL_PATH"
        fi
    fi
done < "$FILE_LIST"

echo "Deletion complete!"
"""

WINDOWS_SCRIPT = """@echo off
REM Delete files listed in files-to-delete.txt
REM Usage: delete-files.bat <base-directory>
setlocal EnableDelayedExpansion

if "%~1"=="" (
    echo Usage: %0 ^<base-directory^>
    exit /b 1
)

set BASE_DIR=%~1
set FILE_LIST=files-to-delete.txt

if not exist "%FILE_LIST%" (
    echo Error: %FILE_LIST% not found.
    exit /b 1
)

for /f "usebackq delims=" %%f in ("%FILE_LIST%") do (
    set "FULL_PATH=%BASE_DIR%\\%%f"
    set "FULL_PATH=!FULL_PATH:/=\\!"
    if exist "!FULL_PATH!" (
        del /f "!FULL_PATH!"
        echo Deleted: !FULL_PATH!
    ) else (
        echo Warning: File not found: !FULL_PATH!
    )
)

echo Deletion complete!
"""


class Deleter(Protocol):
    """Deletion provider: physically removes photos and reports how many went."""

    def delete(self, photos: Iterable[Photo]) -> int:
        ...


def finalize_review(deleter: Deleter, photos: Sequence[Photo], decisions: DecisionMap) -> int:
    """
    Delete every photo marked trash.

    Returns:
        Number of photos the deleter removed (0 if nothing was trashed)

    Raises:
        PermissionError: Propagated from the deleter
    """
    trash = get_trash_photos(photos, decisions)
    if not trash:
        logger.info("No photos to delete")
        return 0

    logger.info(f"Deleting {len(trash)} photos...")
    deleted = deleter.delete(trash)
    if deleted < len(trash):
        logger.warning(f"Deleted {deleted}/{len(trash)} photos; see errors above")
    else:
        logger.info(f"Successfully deleted {deleted} photos")
    return deleted


def write_deletion_plan(
    photos: Sequence[Photo],
    decisions: DecisionMap,
    out_dir: Path,
    platform: Optional[str] = None,
) -> List[Path]:
    """
    Write the trashed photos' relative paths plus a script that deletes them.

    Used when photos should not be deleted in-process. The script takes the
    photo root folder as its only argument.

    Args:
        photos: Photos in session order
        decisions: Decision per photo index
        out_dir: Folder receiving the list and the script
        platform: ``sys.platform``-style name; defaults to the running platform

    Returns:
        Paths of the file list and the script
    """
    platform = platform or sys.platform
    is_windows = platform.startswith("win")
    script_name, script = ("delete-files.bat", WINDOWS_SCRIPT) if is_windows else ("delete-files.sh", UNIX_SCRIPT)

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    trash = get_trash_photos(photos, decisions)
    list_path = out_dir / FILE_LIST_NAME
    list_path.write_text("".join(f"{photo.rel_path}\n" for photo in trash), encoding="utf-8")

    script_path = out_dir / script_name
    newline = "\r\n" if is_windows else "\n"
    with script_path.open("w", encoding="utf-8", newline=newline) as handle:
        handle.write(script)
    if not is_windows:
        script_path.chmod(0o755)

    logger.info(f"Wrote deletion plan for {len(trash)} photos to {out_dir}")
    return [list_path, script_path]
