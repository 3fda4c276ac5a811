"""Object keys and public URLs for stored attachments."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from urllib.parse import quote, urlparse

from approval_api.core.config import settings

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def _public_base() -> tuple[str, str]:
    """(scheme, host) of S3_PUBLIC_BASE_URL, or ("https", "") when unset."""
    base = settings.S3_PUBLIC_BASE_URL.rstrip("/")
    if not base:
        return "https", ""
    parsed = urlparse(base if "://" in base else f"https://{base}")
    return parsed.scheme or "https", parsed.netloc


def _virtual_hosted() -> bool:
    return settings.S3_URL_STYLE.strip().lower() == "virtual"


def sanitize_filename(filename: str) -> str:
    """Replace everything outside [a-zA-Z0-9._-] so keys stay URL-safe."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename or "") or "upload"


def build_storage_key(filename: str, *, now: datetime | None = None) -> str:
    """
    Object key for a new attachment.

    Format: ``<prefix>/<YYYY-MM-DD>/<epoch-ms>-<random>-<sanitized name>``.
    """
    now = now or datetime.now(timezone.utc)
    prefix = settings.ATTACHMENT_KEY_PREFIX.strip("/")
    name = f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}-{sanitize_filename(filename)}"
    return "/".join(part for part in (prefix, now.date().isoformat(), name) if part)


def build_public_url(bucket: str, key: str) -> str:
    """Read URL of ``key``; falls back to AWS hostnames when no public base is set."""
    scheme, host = _public_base()
    quoted_key = quote(key)
    if not host:
        scheme, host = "https", "s3.amazonaws.com"
    if _virtual_hosted():
        return f"{scheme}://{bucket}.{host}/{quoted_key}"
    return f"{scheme}://{host}/{bucket}/{quoted_key}"

