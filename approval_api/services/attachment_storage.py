"""Object-storage gateway used by the attachment upload saga.

The saga only needs three things from storage: a pre-signed write location
per file, a way to push bytes to that location, and a batch delete for
compensation. ``S3AttachmentStorage`` provides them against S3 or any
S3-compatible endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import httpx
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from approval_api.core.config import settings
from approval_api.core.errors import CompensationFailure
from approval_api.services.storage_client import get_s3_client
from approval_api.services.storage_url_service import build_public_url, build_storage_key

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most 1000 keys per call.
_DELETE_BATCH_SIZE = 1000


@dataclass(frozen=True)
class WriteCredential:
    """Pre-signed write location plus the public read location of one object."""

    upload_url: str
    public_url: str
    storage_key: str
    content_type: str


class AttachmentStorage(Protocol):
    def presign_write(self, file_name: str, content_type: str) -> WriteCredential: ...

    async def upload(self, credential: WriteCredential, payload: bytes) -> None: ...

    def delete_keys(self, keys: list[str]) -> None: ...


class S3AttachmentStorage:
    """S3 implementation: presign PUT, upload over HTTP, batch delete."""

    def __init__(
        self,
        *,
        client: BaseClient | None = None,
        bucket: str | None = None,
        expires_in: int | None = None,
    ):
        self._client = client
        self.bucket = bucket or settings.S3_BUCKET
        self.expires_in = expires_in or settings.PRESIGNED_UPLOAD_EXPIRY_SECONDS

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    def presign_write(self, file_name: str, content_type: str) -> WriteCredential:
        key = build_storage_key(file_name)
        upload_url = self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=self.expires_in,
        )
        return WriteCredential(
            upload_url=upload_url,
            public_url=build_public_url(self.bucket, key),
            storage_key=key,
            content_type=content_type,
        )

    async def upload(self, credential: WriteCredential, payload: bytes) -> None:
        async with httpx.AsyncClient(timeout=settings.ATTACHMENT_UPLOAD_TIMEOUT_SECONDS) as client:
            response = await client.put(
                credential.upload_url,
                content=payload,
                headers={"Content-Type": credential.content_type},
            )
        if response.status_code >= 300:
            raise RuntimeError(f"storage rejected upload with HTTP {response.status_code}")

    def delete_keys(self, keys: list[str]) -> None:
        """Delete every key; raise CompensationFailure naming the keys left behind."""
        if not keys:
            return
        remaining: list[str] = []
        reasons: list[str] = []
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            batch = keys[start : start + _DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as exc:
                remaining.extend(batch)
                reasons.append(str(exc))
                continue
            for error in response.get("Errors", []):
                remaining.append(error.get("Key", ""))
                reasons.append(error.get("Message") or error.get("Code") or "unknown error")
        if remaining:
            raise CompensationFailure(remaining, "; ".join(sorted(set(reasons))))
        logger.info("Deleted %d storage object(s)", len(keys))


@lru_cache
def get_attachment_storage() -> S3AttachmentStorage:
    """Process-wide storage gateway (FastAPI dependency)."""
    return S3AttachmentStorage()
