"""Image loading helpers for uploaded photos and stored item images.

Example:
    >>> from seconde.utils.image_utils import load_image_bytes
    >>> image = load_image_bytes(request_payload)
"""

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .exceptions import InvalidInputError


def _open_verified(source, label: str) -> Image.Image:
    try:
        image = Image.open(source)
        # verify() leaves the image unusable, so it is opened twice
        image.verify()
        if hasattr(source, "seek"):
            source.seek(0)
        image = Image.open(source)
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidInputError(f"Unreadable image {label}: {e}", field="image") from e

    return ensure_rgb(image)


def ensure_rgb(image: Image.Image) -> Image.Image:
    """Convert RGBA, palette or grayscale images to RGB."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    return image


def load_image(path: str | Path) -> Image.Image:
    """Load an image from disk.

    Raises:
        FileNotFoundError: If image file doesn't exist
        InvalidInputError: If the file is not a readable image
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    return _open_verified(str(path), str(path))


def load_image_bytes(data: bytes) -> Image.Image:
    """Decode an uploaded photo.

    Raises:
        InvalidInputError: If the payload is empty or not an image
    """
    if not data:
        raise InvalidInputError("Image payload is empty", field="image")
    return _open_verified(io.BytesIO(data), f"payload ({len(data)} bytes)")
