"""Tests for difference-hash computation."""

import io
from functools import partial

import anyio
import imagehash
import pytest
from PIL import ExifTags, Image

from photocull.similarity.hash import (
    ConfigurationError,
    Fingerprint,
    HashConfig,
    ImageLoadError,
    compute_hash,
    compute_photo_hash,
    hash_photos,
    hash_photos_async,
)
from photocull.similarity.distance import hamming_distance

from helpers.images import (
    bits,
    image_bytes,
    make_gradient,
    make_gray_image,
    make_photo,
    make_uniform,
    save_image,
)

ALL_BITS = (1 << 72) - 1


class TestComputeHash:
    def test_uniform_image_hashes_to_zero(self):
        """No pixel is brighter than its neighbour in a flat image."""
        fingerprint = compute_hash(make_uniform())

        assert fingerprint.value == 0
        assert fingerprint.hex == "0" * 18

    def test_descending_gradient_sets_every_bit(self):
        fingerprint = compute_hash(make_gradient(descending=True))

        assert fingerprint.value == ALL_BITS
        assert fingerprint.hex == "f" * 18
        assert fingerprint.bit_count == 72

    def test_ascending_gradient_sets_no_bit(self):
        fingerprint = compute_hash(make_gradient(descending=False))
        assert fingerprint.value == 0

    def test_equal_neighbours_do_not_set_bit(self):
        """Only a strictly brighter left pixel sets a bit."""
        rows = [[100] * 10 for _ in range(8)]
        rows[0][3] = 101
        fingerprint = compute_hash(make_gray_image(rows))

        # Pixel (row 0, col 3) beats col 4; col 2 vs col 3 is darker
        assert fingerprint.value == bits(3)

    def test_bit_position_is_row_major(self):
        """Bit index is row * width + col."""
        rows = [[100] * 10 for _ in range(8)]
        rows[1][0] = 200
        rows[7][8] = 200

        fingerprint = compute_hash(make_gray_image(rows))

        assert fingerprint.value == bits(1 * 9 + 0, 7 * 9 + 8)
        assert bool(fingerprint.bits.hash[1, 0])
        assert bool(fingerprint.bits.hash[7, 8])

    def test_luminance_uses_weighted_channels(self):
        """Blue (0, 0, 255) has luminance 29, darker than gray 30 despite a higher channel sum."""
        image = Image.new("RGB", (10, 8), (30, 30, 30))
        for y in range(8):
            image.putpixel((0, y), (0, 0, 255))
        fingerprint = compute_hash(image)
        assert fingerprint.value == 0

        # Green (0, 255, 0) has luminance 150 and beats gray 149
        image = Image.new("RGB", (10, 8), (149, 149, 149))
        image.putpixel((0, 0), (0, 255, 0))
        fingerprint = compute_hash(image)
        assert fingerprint.value == bits(0)

    def test_deterministic(self, tmp_path):
        path = save_image(make_gradient(), tmp_path / "img.png")

        first = compute_hash(path)
        second = compute_hash(path)

        assert first == second
        assert first.value == second.value

    def test_source_types_agree(self, tmp_path):
        """Paths, strings, bytes, file objects and PIL images hash identically."""
        rows = [[(x * 37 + y * 11) % 256 for x in range(10)] for y in range(8)]
        image = make_gray_image(rows)
        path = save_image(image, tmp_path / "pattern.png")
        data = image_bytes(image)

        expected = compute_hash(image)
        assert compute_hash(path) == expected
        assert compute_hash(str(path)) == expected
        assert compute_hash(data) == expected
        assert compute_hash(io.BytesIO(data)) == expected

    def test_large_image_is_resampled(self, tmp_path):
        """A scaled-up gradient keeps (almost) the same fingerprint."""
        small = make_gradient()
        large = small.resize((90, 80), Image.Resampling.NEAREST)

        fingerprint = compute_hash(large)

        assert fingerprint.width == 9
        assert fingerprint.height == 8
        assert hamming_distance(fingerprint, compute_hash(small)) <= 7

    def test_exif_orientation_is_applied(self, tmp_path):
        """A rotated image tagged with its orientation hashes like the upright original."""
        upright = make_gradient()
        stored = upright.transpose(Image.Transpose.ROTATE_90)
        exif = Image.Exif()
        exif[ExifTags.Base.Orientation] = 6  # rotate 90 degrees clockwise to display
        path = tmp_path / "rotated.png"
        stored.save(path, exif=exif)

        assert compute_hash(path) == compute_hash(upright)
        assert compute_hash(path).value == ALL_BITS

    def test_rgba_and_grayscale_modes(self):
        rgba = Image.new("RGBA", (50, 50), (255, 0, 0, 128))
        gray = Image.new("L", (50, 50), 128)

        assert isinstance(compute_hash(rgba), Fingerprint)
        assert isinstance(compute_hash(gray), Fingerprint)

    def test_custom_grid(self):
        config = HashConfig(width=4, height=3)
        fingerprint = compute_hash(make_gradient(size=(5, 3)), config)

        assert fingerprint.bit_count == 12
        assert fingerprint.value == (1 << 12) - 1
        assert fingerprint.hex == "fff"

    def test_invalid_grid_rejected(self):
        with pytest.raises(ConfigurationError):
            HashConfig(width=0, height=8)

    def test_nonexistent_file(self, tmp_path):
        with pytest.raises(ImageLoadError):
            compute_hash(tmp_path / "missing.png")

    def test_corrupted_bytes(self, tmp_path):
        corrupted = tmp_path / "corrupted.png"
        corrupted.write_bytes(b"not an image")

        with pytest.raises(ImageLoadError):
            compute_hash(corrupted)
        with pytest.raises(ImageLoadError):
            compute_hash(b"not an image either")

    def test_missing_source(self):
        with pytest.raises(ImageLoadError):
            compute_hash(None)

    def test_decoder_is_used(self):
        calls = []

        def decoder(source):
            calls.append(source)
            return make_gradient()

        fingerprint = compute_hash("photo.heic", decoder=decoder)

        assert calls == ["photo.heic"]
        assert fingerprint.value == ALL_BITS

    def test_decoder_failure_becomes_image_load_error(self):
        def decoder(source):
            raise RuntimeError("conversion failed")

        with pytest.raises(ImageLoadError) as exc_info:
            compute_hash(b"heic-bytes", decoder=decoder)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestResourceRelease:
    def _tracked_image(self, closed):
        image = make_gradient()
        image.close = lambda: closed.append(True)
        return image

    def test_decoded_image_closed_after_success(self):
        closed = []
        compute_hash("x", decoder=lambda source: self._tracked_image(closed))
        assert closed == [True]

    def test_decoded_image_closed_after_failure(self):
        closed = []

        def decoder(source):
            image = self._tracked_image(closed)

            def broken_convert(*args, **kwargs):
                raise OSError("truncated")

            image.convert = broken_convert
            return image

        with pytest.raises(ImageLoadError):
            compute_hash("x", decoder=decoder)
        assert closed == [True]

    def test_caller_image_left_open(self):
        closed = []
        compute_hash(self._tracked_image(closed))
        assert closed == []


class TestFingerprint:
    def test_from_int_matches_bits(self):
        fingerprint = Fingerprint.from_int(bits(0, 10, 71))

        assert fingerprint.value == bits(0, 10, 71)
        assert bool(fingerprint.bits.hash[0, 0])
        assert bool(fingerprint.bits.hash[1, 1])
        assert bool(fingerprint.bits.hash[7, 8])
        assert str(fingerprint) == fingerprint.hex

    def test_from_int_rejects_oversized_value(self):
        with pytest.raises(ValueError):
            Fingerprint.from_int(1 << 72)
        with pytest.raises(ValueError):
            Fingerprint.from_int(-1)

    def test_immutable(self):
        fingerprint = Fingerprint.from_int(5)
        with pytest.raises(AttributeError):
            fingerprint.bits = imagehash.ImageHash(fingerprint.bits.hash)  # type: ignore

    def test_equality(self):
        assert Fingerprint.from_int(42) == Fingerprint.from_int(42)
        assert Fingerprint.from_int(42) != Fingerprint.from_int(43)
        assert Fingerprint.from_int(0, 9, 8) != Fingerprint.from_int(0, 8, 8)


class TestPhotoHashing:
    def test_compute_photo_hash_names_photo_on_failure(self):
        photo = make_photo("broken", source=b"garbage")

        with pytest.raises(ImageLoadError, match="broken"):
            compute_photo_hash(photo)

    def test_hash_photos_reports_progress_and_failures(self):
        photos = [
            make_photo("a", source=make_gradient()),
            make_photo("b", source=b"garbage"),
            make_photo("c", source=make_uniform()),
        ]
        progress = []

        results = hash_photos(photos, on_progress=lambda done, total: progress.append((done, total)))

        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert [photo.id for photo, _ in results] == ["a", "b", "c"]
        assert results[0][1].value == ALL_BITS
        assert results[1][1] is None
        assert results[2][1].value == 0

    def test_hash_photos_attaches_fingerprints(self):
        photo = make_photo("a", source=make_gradient())
        hash_photos([photo])
        assert photo.fingerprint is not None
        assert photo.fingerprint.value == ALL_BITS

    def test_hash_photos_reuses_matching_fingerprint(self):
        """A precomputed fingerprint is used without decoding the source."""
        photo = make_photo("a", source=None, fingerprint_value=bits(1, 2))

        [(_, fingerprint)] = hash_photos([photo])

        assert fingerprint.value == bits(1, 2)

    def test_hash_photos_recomputes_other_grid(self):
        photo = make_photo("a", source=make_gradient(size=(5, 3)))
        photo.attach_fingerprint(Fingerprint.from_int(0))

        [(_, fingerprint)] = hash_photos([photo], HashConfig(width=4, height=3))

        assert fingerprint.bit_count == 12
        assert fingerprint.value == (1 << 12) - 1

    def test_hash_photos_logs_failure(self, caplog):
        photo = make_photo("unreadable", source=b"garbage")

        with caplog.at_level("WARNING"):
            hash_photos([photo])

        assert "unreadable" in caplog.text


class TestAsyncHashing:
    def _photos(self):
        sources = [make_gradient(), b"garbage", make_uniform(), make_gradient(descending=False), make_gradient()]
        return [make_photo(f"p{i}", source=source) for i, source in enumerate(sources)]

    def test_matches_sync_results(self):
        sync_results = hash_photos(self._photos())
        async_results = anyio.run(partial(hash_photos_async, self._photos(), max_workers=3))

        assert [photo.id for photo, _ in async_results] == [photo.id for photo, _ in sync_results]
        for (_, expected), (_, actual) in zip(sync_results, async_results):
            assert expected == actual

    def test_progress_is_monotonic(self):
        progress = []
        photos = self._photos()

        anyio.run(partial(
            hash_photos_async,
            photos,
            on_progress=lambda done, total: progress.append((done, total)),
            max_workers=4,
        ))

        assert [done for done, _ in progress] == list(range(1, len(photos) + 1))
        assert all(total == len(photos) for _, total in progress)

    def test_rejects_zero_workers(self):
        with pytest.raises(ConfigurationError):
            anyio.run(partial(hash_photos_async, [], max_workers=0))
