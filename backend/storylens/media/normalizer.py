"""Decode any uploaded image, re-encode it as JPEG and fit its long side to the canonical size.

The output establishes the canonical coordinate space: every bounding box the
pipeline produces is relative to an image whose larger side is exactly
``long_side`` pixels. No padding is added here; letterboxing is a display concern.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re

from PIL import Image, ImageOps, UnidentifiedImageError

from storylens.errors import InputError, UnsupportedImageError
from storylens.models.caption import NormalizedImage

logger = logging.getLogger(__name__)

CANONICAL_LONG_SIDE = 1024
JPEG_QUALITY = 90

_DATA_URL_RE = re.compile(r"^data:[\w/+.-]+;base64,", re.IGNORECASE)


def decode_base64_image(payload: str) -> bytes:
    """Decode a base64 string (bare or ``data:`` URL) into raw bytes."""
    if not payload or not isinstance(payload, str):
        raise InputError("No image provided.")
    body = _DATA_URL_RE.sub("", payload.strip(), count=1)
    try:
        data = base64.b64decode(body, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InputError("Invalid base64 input.") from e
    if not data:
        raise InputError("No image provided.")
    return data


def fit_inside(width: int, height: int, long_side: int = CANONICAL_LONG_SIDE) -> tuple[int, int]:
    """Scale (width, height) so the larger side equals ``long_side``, keeping aspect ratio."""
    if width <= 0 or height <= 0:
        raise UnsupportedImageError("Image has no pixels.")
    scale = long_side / max(width, height)
    if width >= height:
        return long_side, max(1, round(height * scale))
    return max(1, round(width * scale)), long_side


def normalize_image(data: bytes, long_side: int = CANONICAL_LONG_SIDE) -> NormalizedImage:
    """Decode, orient, convert to RGB JPEG and resize so max(w, h) == long_side."""
    try:
        with Image.open(io.BytesIO(data)) as check:
            check.verify()
        img = Image.open(io.BytesIO(data))
        img.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        logger.warning("Rejected upload: %s", e)
        raise UnsupportedImageError() from e

    source_format = img.format
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        # JPEG has no alpha; flatten onto white instead of black
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        else:
            img = img.convert("RGB")

    target = fit_inside(img.width, img.height, long_side)
    if target != img.size:
        img = img.resize(target, Image.Resampling.LANCZOS)

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=JPEG_QUALITY)
    logger.debug(
        "Normalized %s image to %dx%d (%d bytes)", source_format, img.width, img.height, out.tell()
    )
    return NormalizedImage(data=out.getvalue(), width=img.width, height=img.height)


def encode_base64(data: bytes) -> str:
    """Binary payloads cross the API boundary as base64 text."""
    return base64.b64encode(data).decode("ascii")
