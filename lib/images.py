# =============================================================================
# lib/images.py - Image Optimisation and Watermarking
# =============================================================================
# Pillow helpers for listing media:
# - optimize_image: fit inside 2000x2000 (never enlarge), JPEG q85 progressive
# - add_watermark: semi-transparent text with a soft shadow in one corner
#
# Both take and return raw bytes so they can sit between an upload and
# Supabase Storage without touching disk.
#
# Usage:
#   from lib.images import optimize_image, add_watermark
#   data, content_type = optimize_image(raw_bytes)
#   data = add_watermark(data, text="A2Z.co.za")
# =============================================================================

from __future__ import annotations

import io
import logging
from typing import Literal

from PIL import Image, ImageDraw, ImageFilter, ImageFont, UnidentifiedImageError

logger = logging.getLogger(__name__)

Position = Literal["bottom-right", "bottom-left", "top-right", "top-left", "center"]

MAX_DIMENSION = 2000
JPEG_QUALITY = 85

DEFAULT_OPACITY = 0.5
DEFAULT_FONT_SIZE = 48
DEFAULT_PADDING = 40

_CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


class ImageProcessingError(Exception):
    """Raised when bytes cannot be decoded as a supported image."""


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Could not read image: {e}") from e
    return image


def _to_rgb(image: Image.Image) -> Image.Image:
    # Flatten transparency onto white for JPEG output
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def _save(image: Image.Image, fmt: str) -> bytes:
    output = io.BytesIO()
    if fmt == "JPEG":
        _to_rgb(image).save(output, "JPEG", quality=JPEG_QUALITY, progressive=True, optimize=True)
    elif fmt == "WEBP":
        image.save(output, "WEBP", quality=JPEG_QUALITY)
    else:
        image.save(output, "PNG", optimize=True)
    return output.getvalue()


def content_type_for(data: bytes) -> str:
    """Sniff the MIME type of image bytes."""
    return _CONTENT_TYPES.get(_open(data).format or "", "application/octet-stream")


def optimize_image(data: bytes, max_dimension: int = MAX_DIMENSION) -> tuple[bytes, str]:
    """
    Shrink an image to fit inside max_dimension x max_dimension.

    Images already small enough keep their size. JPEGs are re-encoded at
    quality 85 progressive; PNG and WebP keep their format.

    Args:
        data: Raw image bytes
        max_dimension: Longest allowed side in pixels

    Returns:
        Tuple of (image bytes, content type)

    Raises:
        ImageProcessingError: If the bytes are not a readable image
    """
    image = _open(data)
    fmt = image.format if image.format in _CONTENT_TYPES else "JPEG"

    if image.width > max_dimension or image.height > max_dimension:
        image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        logger.debug(f"Resized image to {image.width}x{image.height}")

    return _save(image, fmt), _CONTENT_TYPES[fmt]


def _text_origin(
    position: Position,
    image_size: tuple[int, int],
    text_size: tuple[int, int],
    padding: int,
) -> tuple[int, int]:
    width, height = image_size
    text_width, text_height = text_size
    if position == "bottom-left":
        return padding, height - text_height - padding
    if position == "top-right":
        return width - text_width - padding, padding
    if position == "top-left":
        return padding, padding
    if position == "center":
        return (width - text_width) // 2, (height - text_height) // 2
    return width - text_width - padding, height - text_height - padding


def add_watermark(
    data: bytes,
    text: str = "A2Z.co.za",
    position: Position = "bottom-right",
    opacity: float = DEFAULT_OPACITY,
    font_size: int = DEFAULT_FONT_SIZE,
    padding: int = DEFAULT_PADDING,
) -> bytes:
    """
    Stamp a text watermark onto an image.

    The text is white at `opacity`, with a blurred dark shadow offset by 2px.
    Output keeps the input's format (JPEG for anything unrecognised).

    Raises:
        ImageProcessingError: If the bytes are not a readable image
    """
    image = _open(data)
    fmt = image.format if image.format in _CONTENT_TYPES else "JPEG"
    base = image.convert("RGBA")

    font = ImageFont.load_default(size=font_size)
    measure = ImageDraw.Draw(base)
    left, top, right, bottom = measure.textbbox((0, 0), text, font=font)
    x, y = _text_origin(position, base.size, (right - left, bottom - top), padding)
    x, y = x - left, y - top

    alpha = max(0, min(255, int(255 * opacity)))

    shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
    ImageDraw.Draw(shadow).text((x + 2, y + 2), text, font=font, fill=(0, 0, 0, alpha // 2))
    shadow = shadow.filter(ImageFilter.GaussianBlur(3))

    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    ImageDraw.Draw(overlay).text((x, y), text, font=font, fill=(255, 255, 255, alpha))

    stamped = Image.alpha_composite(Image.alpha_composite(base, shadow), overlay)
    return _save(stamped, fmt)
