"""Canonical artifact encoding: 1024x1024 PNG."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from ..errors import DecodeError

TARGET_SIZE = 1024
CANONICAL_FORMAT = "PNG"
CANONICAL_MIME = "image/png"

_WIDE_GREYSCALE_MODES = {"I", "I;16", "I;16B", "I;16L"}

# Inputs of any pixel count are accepted; only the cropped square is resampled.
Image.MAX_IMAGE_PIXELS = None


def _open(raw: bytes) -> Image.Image:
    if not raw:
        raise DecodeError("Image payload is empty.")
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    return image


def probe(raw: bytes) -> tuple[str | None, int, int]:
    image = _open(raw)
    width, height = image.size
    return image.format, width, height


def center_square_box(width: int, height: int) -> tuple[int, int, int, int]:
    size = min(width, height)
    left = max(0, (width - size) // 2)
    top = max(0, (height - size) // 2)
    return left, top, left + size, top + size


def normalize(raw: bytes) -> bytes:
    """Return ``raw`` re-encoded as a TARGET_SIZE square PNG.

    Already-canonical input is returned as is. Anything else is center-cropped
    to its largest square and scaled to the target size.
    """
    image = _open(raw)
    width, height = image.size
    if image.format == CANONICAL_FORMAT and width == TARGET_SIZE and height == TARGET_SIZE:
        return raw

    square = _png_compatible(image.crop(center_square_box(width, height)))
    del image
    if square.size != (TARGET_SIZE, TARGET_SIZE):
        square = square.resize((TARGET_SIZE, TARGET_SIZE), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    square.save(buffer, format=CANONICAL_FORMAT, compress_level=9, optimize=True)
    return buffer.getvalue()


def _png_compatible(image: Image.Image) -> Image.Image:
    if image.mode in {"RGB", "RGBA", "L", "LA"}:
        return image
    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode in _WIDE_GREYSCALE_MODES:
        # 16-bit samples are scaled into 8 bits, not clipped.
        return image.convert("I").point(lambda value: value * (1 / 256)).convert("L")
    if image.mode == "1":
        return image.convert("L")
    # CMYK, YCbCr, LAB, HSV and friends.
    return image.convert("RGB")
