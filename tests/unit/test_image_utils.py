"""Unit tests for image utility functions."""

import io

import pytest
from PIL import Image

from seconde.utils.exceptions import InvalidInputError
from seconde.utils.image_utils import ensure_rgb, load_image, load_image_bytes


def encoded(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class TestLoadImage:
    """Test image loading from disk."""

    def test_load_jpeg_image(self, tmp_path):
        path = tmp_path / "test.jpg"
        Image.new("RGB", (224, 224), color=(255, 0, 0)).save(path)

        loaded = load_image(path)

        assert loaded.mode == "RGB"
        assert loaded.size == (224, 224)

    def test_rgba_converted(self, tmp_path):
        path = tmp_path / "test.png"
        Image.new("RGBA", (10, 10), color=(0, 0, 255, 128)).save(path)
        assert load_image(str(path)).mode == "RGB"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.jpg")

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "corrupt.jpg"
        path.write_bytes(b"definitely not a jpeg")
        with pytest.raises(InvalidInputError, match="Unreadable image"):
            load_image(path)


class TestLoadImageBytes:
    """Test decoding uploaded photos."""

    def test_png_payload(self):
        image = load_image_bytes(encoded(Image.new("L", (8, 6))))
        assert image.mode == "RGB"
        assert image.size == (8, 6)

    def test_jpeg_payload(self):
        assert load_image_bytes(encoded(Image.new("RGB", (4, 4)), "JPEG")).size == (4, 4)

    @pytest.mark.parametrize("payload", [b"", b"\x00\x01\x02"])
    def test_invalid_payload(self, payload):
        with pytest.raises(InvalidInputError):
            load_image_bytes(payload)


class TestEnsureRgb:
    """Test mode conversion."""

    def test_rgb_untouched(self):
        image = Image.new("RGB", (2, 2))
        assert ensure_rgb(image) is image

    def test_palette_converted(self):
        assert ensure_rgb(Image.new("P", (2, 2))).mode == "RGB"
