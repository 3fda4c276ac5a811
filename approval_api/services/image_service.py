"""Best-effort image size reduction before upload."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

from approval_api.core.config import settings

logger = logging.getLogger(__name__)

_FORMAT_BY_MIME = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}
_JPEG_QUALITIES = (85, 75, 65, 55)


def _encode(image: Image.Image, fmt: str, quality: int | None = None) -> bytes:
    buf = io.BytesIO()
    if fmt == "JPEG":
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(buf, format=fmt, quality=quality or _JPEG_QUALITIES[0], optimize=True)
    elif fmt == "WEBP":
        image.save(buf, format=fmt, quality=quality or _JPEG_QUALITIES[0])
    else:
        image.save(buf, format=fmt, optimize=True)
    return buf.getvalue()


def reduce_image(
    payload: bytes,
    content_type: str,
    *,
    max_bytes: int | None = None,
    max_dimension: int | None = None,
) -> bytes:
    """
    Shrink an image so it fits ``max_bytes`` and ``max_dimension``.

    Non-images and images already under the byte limit are returned as-is.
    Any decoding or encoding problem falls back to the original bytes.
    """
    max_bytes = max_bytes or settings.IMAGE_MAX_BYTES
    max_dimension = max_dimension or settings.IMAGE_MAX_DIMENSION

    fmt = _FORMAT_BY_MIME.get((content_type or "").lower())
    if fmt is None or len(payload) <= max_bytes:
        return payload

    try:
        with Image.open(io.BytesIO(payload)) as original:
            image = ImageOps.exif_transpose(original)
            image.thumbnail((max_dimension, max_dimension))
            if fmt == "PNG":
                reduced = _encode(image, fmt)
            else:
                reduced = b""
                for quality in _JPEG_QUALITIES:
                    reduced = _encode(image, fmt, quality)
                    if len(reduced) <= max_bytes:
                        break
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("Image reduction failed, uploading original bytes: %s", exc)
        return payload

    if len(reduced) >= len(payload):
        return payload
    return reduced
