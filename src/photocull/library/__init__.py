"""Photo records, folder enumeration and local deletion."""

from .models import Photo, Decision, DecisionMap, DecidedPolicy, ImageSource
from .scan import scan_folder, is_supported_image, SUPPORTED_EXTENSIONS
from .fs import LocalFileDeleter

__all__ = [
    "Photo",
    "Decision",
    "DecisionMap",
    "DecidedPolicy",
    "ImageSource",
    "scan_folder",
    "is_supported_image",
    "SUPPORTED_EXTENSIONS",
    "LocalFileDeleter",
]
