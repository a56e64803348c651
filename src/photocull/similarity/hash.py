"""Difference-hash (dHash) fingerprints for photo similarity detection."""

from __future__ import annotations

import io
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import anyio
import imagehash
import numpy as np
from anyio import to_thread
from PIL import ExifTags, Image, ImageOps

from ..library.models import ImageSource, Photo
from ..logging import get_logger

logger = get_logger(__name__)

Decoder = Callable[[ImageSource], Image.Image]
ProgressCallback = Callable[[int, int], None]
HashOutcome = Tuple[Photo, Optional["Fingerprint"]]

# ITU-R 601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])
RESAMPLE_FILTER = Image.Resampling.LANCZOS


class ImageLoadError(Exception):
    """Raised when an image cannot be decoded for hashing."""


class ConfigurationError(ValueError):
    """Raised for invalid settings or incompatible fingerprint grids."""


@dataclass(frozen=True)
class HashConfig:
    """Grid of comparison bits; the image is sampled at (width + 1) x height."""
    width: int = 9
    height: int = 8

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ConfigurationError(f"Hash grid must be at least 1x1, got {self.width}x{self.height}")

    @property
    def bit_count(self) -> int:
        return self.width * self.height


DEFAULT_CONFIG = HashConfig()


@dataclass(frozen=True)
class Fingerprint:
    """
    Perceptual fingerprint of one image.

    Wraps an ``imagehash.ImageHash`` whose boolean grid has shape
    ``(height, width)``; bit ``row * width + col`` of ``value`` mirrors
    ``bits.hash[row, col]``.
    """
    bits: imagehash.ImageHash

    @property
    def height(self) -> int:
        return int(self.bits.hash.shape[0])

    @property
    def width(self) -> int:
        return int(self.bits.hash.shape[1])

    @property
    def bit_count(self) -> int:
        return int(self.bits.hash.size)

    @property
    def config(self) -> HashConfig:
        return HashConfig(width=self.width, height=self.height)

    @property
    def value(self) -> int:
        """Bits packed into a single integer, least significant bit first."""
        packed = 0
        for position, bit in enumerate(self.bits.hash.flatten()):
            if bit:
                packed |= 1 << position
        return packed

    @property
    def hex(self) -> str:
        """Zero-padded hexadecimal form of ``value`` for logs and debugging."""
        digits = (self.bit_count + 3) // 4
        return format(self.value, f"0{digits}x")

    @classmethod
    def from_int(cls, value: int, width: int = 9, height: int = 8) -> Fingerprint:
        if value < 0 or value >> (width * height):
            raise ValueError(f"Value does not fit in a {width}x{height} fingerprint")
        flat = [(value >> position) & 1 == 1 for position in range(width * height)]
        grid = np.array(flat, dtype=bool).reshape((height, width))
        return cls(bits=imagehash.ImageHash(grid))

    def __str__(self) -> str:
        return self.hex


@contextmanager
def _open_image(source: ImageSource, decoder: Optional[Decoder]) -> Iterator[Image.Image]:
    """Decode ``source`` and close whatever this function opened on exit."""
    if isinstance(source, Image.Image) and decoder is None:
        # Caller owns the image
        yield source
        return

    if source is None:
        raise ValueError("no image source")

    if decoder is not None:
        image = decoder(source)
    elif isinstance(source, bytes):
        image = Image.open(io.BytesIO(source))
    else:
        image = Image.open(source)

    try:
        yield image
    finally:
        if image is not source:
            image.close()


def _upright(image: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag, as image viewers do when displaying."""
    if image.getexif().get(ExifTags.Base.Orientation, 1) == 1:
        return image
    return ImageOps.exif_transpose(image)


def _luminance(image: Image.Image) -> np.ndarray:
    pixels = np.asarray(image.convert("RGB"), dtype=np.float64)
    # Round half up so results match integer canvas luminance
    return np.floor(pixels @ LUMA_WEIGHTS + 0.5)


def compute_hash(
    source: ImageSource,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> Fingerprint:
    """
    Compute the difference hash of an image.

    The image is turned upright according to its EXIF orientation,
    resampled to (width + 1) x height, reduced to luminance
    and each pixel is compared with its right neighbour: the bit is set
    when the left pixel is strictly brighter.

    Args:
        source: Path, raw bytes, binary file object or decoded PIL image
        config: Hash grid dimensions (9x8 by default)
        decoder: Optional decode provider used instead of Pillow's loader

    Returns:
        Fingerprint of ``config.width * config.height`` bits

    Raises:
        ImageLoadError: If the image cannot be decoded or converted
    """
    config = config or DEFAULT_CONFIG
    size = (config.width + 1, config.height)

    try:
        with _open_image(source, decoder) as image:
            rgb = _upright(image).convert("RGB")
            resized = rgb if rgb.size == size else rgb.resize(size, RESAMPLE_FILTER)
            lum = _luminance(resized)
    except Exception as exc:
        raise ImageLoadError(f"Failed to load image {_describe(source)}: {exc}") from exc

    grid = lum[:, :-1] > lum[:, 1:]
    fingerprint = Fingerprint(bits=imagehash.ImageHash(grid))
    logger.debug(f"Computed dHash for {_describe(source)}: {fingerprint.hex}")
    return fingerprint


def _describe(source: object) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    return f"<{type(source).__name__}>"


def compute_photo_hash(
    photo: Photo,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> Fingerprint:
    """
    Hash a photo's content.

    Raises:
        ImageLoadError: If the photo cannot be decoded; the message names the photo
    """
    try:
        return compute_hash(photo.source, config, decoder)
    except ImageLoadError as exc:
        raise ImageLoadError(f"Failed to compute hash for {photo.name} ({photo.id}): {exc}") from exc


def _cached_fingerprint(photo: Photo, config: HashConfig) -> Optional[Fingerprint]:
    fingerprint = photo.fingerprint
    if fingerprint is not None and fingerprint.config == config:
        return fingerprint
    return None


def _hash_one(photo: Photo, config: HashConfig, decoder: Optional[Decoder]) -> Optional[Fingerprint]:
    cached = _cached_fingerprint(photo, config)
    if cached is not None:
        return cached

    try:
        fingerprint = compute_photo_hash(photo, config, decoder)
    except ImageLoadError as exc:
        logger.warning(f"Excluding photo from duplicate detection: {exc}")
        return None

    photo.attach_fingerprint(fingerprint)
    return fingerprint


def hash_photos(
    photos: Sequence[Photo],
    config: Optional[HashConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    decoder: Optional[Decoder] = None,
) -> List[HashOutcome]:
    """
    Fingerprint a batch of photos one after another.

    Photos that already carry a fingerprint for the same grid are not
    decoded again; new fingerprints are attached to their photo. A photo
    that fails to decode is logged and paired with ``None`` instead of
    aborting the batch.

    Args:
        photos: Photos to hash
        config: Hash grid dimensions
        on_progress: Called with (completed, total) after every photo
        decoder: Optional decode provider

    Returns:
        List of (photo, fingerprint or None) in input order
    """
    config = config or DEFAULT_CONFIG
    total = len(photos)
    results: List[HashOutcome] = []

    for completed, photo in enumerate(photos, start=1):
        results.append((photo, _hash_one(photo, config, decoder)))
        if on_progress is not None:
            on_progress(completed, total)

    failed = sum(1 for _, fingerprint in results if fingerprint is None)
    logger.info(f"Hashed {total - failed}/{total} photos ({failed} failed)")
    return results


async def hash_photos_async(
    photos: Sequence[Photo],
    config: Optional[HashConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    decoder: Optional[Decoder] = None,
    max_workers: int = 1,
) -> List[HashOutcome]:
    """
    Asynchronous ``hash_photos`` running decodes in worker threads.

    At most ``max_workers`` images are decoded at once, which bounds peak
    memory. ``on_progress`` is called in completion order, so the completed
    count only ever grows; results keep input order regardless.
    """
    if max_workers < 1:
        raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")

    config = config or DEFAULT_CONFIG
    total = len(photos)
    fingerprints: List[Optional[Fingerprint]] = [None] * total
    limiter = anyio.CapacityLimiter(max_workers)
    completed = 0

    async def worker(position: int, photo: Photo) -> None:
        nonlocal completed
        fingerprints[position] = await to_thread.run_sync(
            _hash_one, photo, config, decoder, limiter=limiter
        )
        completed += 1
        if on_progress is not None:
            on_progress(completed, total)

    async with anyio.create_task_group() as tg:
        for position, photo in enumerate(photos):
            tg.start_soon(worker, position, photo)

    results = list(zip(photos, fingerprints))
    failed = sum(1 for fingerprint in fingerprints if fingerprint is None)
    logger.info(f"Hashed {total - failed}/{total} photos ({failed} failed)")
    return results
