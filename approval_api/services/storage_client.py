"""S3 client factory for the attachment bucket."""

from __future__ import annotations

from urllib.parse import urlparse

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from approval_api.core.config import settings

_ADDRESSING_STYLES = {"path", "virtual"}


def _endpoint() -> str | None:
    return settings.S3_ENDPOINT_URL.rstrip("/") or None


def _signing_region(endpoint_url: str | None) -> str | None:
    """GCS's XML API signs SigV4 with region ``auto``; everything else uses S3_REGION."""
    hostname = (urlparse(endpoint_url or "").hostname or "").lower()
    on_gcs = hostname == "storage.googleapis.com" or hostname.endswith(".storage.googleapis.com")
    if on_gcs and settings.S3_REGION in ("", "us-east-1"):
        return "auto"
    return settings.S3_REGION or None


def _client_config() -> Config:
    # SigV4 keeps Content-Type inside the pre-signed PUT signature.
    options: dict = {
        "signature_version": "s3v4",
        "retries": {"max_attempts": 3, "mode": "standard"},
    }
    style = settings.S3_URL_STYLE.strip().lower()
    if style in _ADDRESSING_STYLES:
        options["s3"] = {"addressing_style": style}
    return Config(**options)


def get_s3_client() -> BaseClient:
    """Client for the attachment bucket (AWS or any S3-compatible endpoint)."""
    endpoint_url = _endpoint()
    return boto3.client(
        "s3",
        region_name=_signing_region(endpoint_url),
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=endpoint_url,
        config=_client_config(),
    )
