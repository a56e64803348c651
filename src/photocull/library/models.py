"""
Core records shared by the similarity and review layers.

A ``Photo`` is created once per session by a folder provider; the only
mutation it supports afterwards is attaching a perceptual fingerprint.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from io import IOBase
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Union

from PIL import Image

if TYPE_CHECKING:
    from ..similarity.hash import Fingerprint

ImageSource = Union[Path, str, bytes, IOBase, Image.Image]


class Decision(str, Enum):
    """A user's verdict on a photo. Undecided (or skipped) is ``None``."""
    KEEP = "keep"
    TRASH = "trash"
    ARCHIVE = "archive"


DecisionMap = Dict[int, Optional[Decision]]


class DecidedPolicy(str, Enum):
    """Which decision map entries count as "decided" in review statistics."""
    KEEP_OR_TRASH = "keep_or_trash"  # only final verdicts
    NON_NULL = "non_null"            # any explicit value, archive included
    ANY_KEY = "any_key"              # every key, even skipped (None) entries


@dataclass
class Photo:
    """
    Single photo in a review session.

    Attributes:
        id: Stable unique identifier
        name: Display name (file name)
        rel_path: POSIX path relative to the chosen root folder
        size_bytes: File size in bytes
        source: Lazily decodable content (path, bytes, file object or PIL image)
        fingerprint: Previously computed perceptual fingerprint, if any
    """
    id: str
    name: str
    rel_path: str
    size_bytes: int
    source: Optional[ImageSource] = None
    fingerprint: Optional[Fingerprint] = None

    def attach_fingerprint(self, fingerprint: Fingerprint) -> None:
        self.fingerprint = fingerprint
