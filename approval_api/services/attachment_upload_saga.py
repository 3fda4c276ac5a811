"""All-or-nothing upload of a set of attachment files.

Files are validated (tables) and reduced (images) first, then every file gets
its own pre-signed write location and is uploaded concurrently. Every upload
runs to completion; if any of them failed, the ones that succeeded are deleted
again and the whole set is reported as failed. Nothing here touches the
database: callers persist attachment rows only after a successful run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import anyio

from approval_api.core.async_utils import gather_settled, run_async
from approval_api.core.config import settings
from approval_api.core.errors import CompensationFailure, UploadFailure
from approval_api.db.enums import AttachmentType
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.services.image_service import reduce_image
from approval_api.services.table_validator import TableValidationError, validate_table

logger = logging.getLogger(__name__)

TableValidator = Callable[[str, bytes], object]
ImageReducer = Callable[[bytes, str], bytes]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class PendingFile:
    """
    One candidate attachment.

    A file with a ``payload`` and no ``file_path`` is new and gets uploaded.
    A file with a ``file_path`` and no payload was stored earlier and is
    carried over untouched.
    """

    attachment_type: AttachmentType
    file_name: str
    content_type: str = DEFAULT_CONTENT_TYPE
    payload: bytes | None = None
    file_path: str | None = None
    file_size: int = 0

    @property
    def is_new(self) -> bool:
        return self.payload is not None and not self.file_path

    @property
    def is_carry_over(self) -> bool:
        return self.payload is None and bool(self.file_path)


@dataclass(frozen=True)
class StoredAttachment:
    """Descriptor of a durably stored file, ready to become an attachment row."""

    attachment_type: AttachmentType
    file_name: str
    file_path: str
    file_size: int
    mime_type: str | None
    storage_key: str | None = None


def carry_over_attachments(files: list[PendingFile]) -> list[StoredAttachment]:
    """Pass already-stored files through without re-uploading them."""
    return [
        StoredAttachment(
            attachment_type=f.attachment_type,
            file_name=f.file_name,
            file_path=f.file_path or "",
            file_size=f.file_size,
            mime_type=f.content_type,
        )
        for f in files
        if f.is_carry_over
    ]


def _reason(exc: BaseException) -> str:
    if isinstance(exc, TimeoutError):
        return "upload timed out"
    return str(exc) or exc.__class__.__name__


def _check_sizes(files: list[PendingFile]) -> list[tuple[str, str]]:
    limit = settings.ATTACHMENT_MAX_FILE_SIZE_BYTES
    return [
        (f.file_name, f"file exceeds {limit} bytes")
        for f in files
        if f.payload is not None and len(f.payload) > limit
    ]


async def _validate_tables(
    files: list[PendingFile], validator: TableValidator
) -> list[tuple[str, str]]:
    failures: list[tuple[str, str]] = []
    for f in files:
        if f.attachment_type is not AttachmentType.TABLE:
            continue
        try:
            await anyio.to_thread.run_sync(validator, f.file_name, f.payload)
        except TableValidationError as exc:
            failures.append((f.file_name, str(exc)))
        except Exception as exc:
            logger.exception("Table validation crashed for %s", f.file_name)
            failures.append((f.file_name, f"table could not be read ({_reason(exc)})"))
    return failures


async def _compensate(storage: AttachmentStorage, keys: list[str]) -> None:
    if not keys:
        return
    try:
        await anyio.to_thread.run_sync(storage.delete_keys, keys)
    except CompensationFailure as exc:
        logger.error(
            "Upload compensation left %d orphaned object(s) for manual cleanup: %s (%s)",
            len(exc.keys),
            ", ".join(exc.keys),
            exc.reason,
        )
    except Exception as exc:
        logger.error(
            "Upload compensation failed, %d object(s) may be orphaned: %s (%s)",
            len(keys),
            ", ".join(keys),
            _reason(exc),
        )
    else:
        logger.info("Upload compensation deleted %d object(s)", len(keys))


async def run_upload_saga(
    files: list[PendingFile],
    *,
    storage: AttachmentStorage,
    timeout: float | None = None,
    table_validator: TableValidator = validate_table,
    image_reducer: ImageReducer = reduce_image,
) -> list[StoredAttachment]:
    """
    Upload every new file in ``files`` or none of them.

    Returns one descriptor per new file, in input order. Raises UploadFailure
    listing each failing file after compensating the successful uploads.
    """
    candidates = [f for f in files if f.is_new]
    if not candidates:
        return []
    if timeout is None:
        timeout = settings.ATTACHMENT_UPLOAD_TIMEOUT_SECONDS

    failures = _check_sizes(candidates) + await _validate_tables(candidates, table_validator)
    if failures:
        logger.info("Upload saga rejected %d file(s) before upload", len(failures))
        raise UploadFailure(failures)

    prepared: list[tuple[PendingFile, bytes]] = []
    for f in candidates:
        payload = f.payload or b""
        if f.attachment_type is AttachmentType.IMAGE:
            payload = await anyio.to_thread.run_sync(image_reducer, payload, f.content_type)
        prepared.append((f, payload))

    logger.info("Upload saga started for %d file(s)", len(prepared))

    def _task(f: PendingFile, payload: bytes):
        async def _upload() -> StoredAttachment:
            credential = await anyio.to_thread.run_sync(
                storage.presign_write, f.file_name, f.content_type
            )
            await storage.upload(credential, payload)
            return StoredAttachment(
                attachment_type=f.attachment_type,
                file_name=f.file_name,
                file_path=credential.public_url,
                file_size=len(payload),
                mime_type=f.content_type,
                storage_key=credential.storage_key,
            )

        return _upload

    results = await gather_settled([_task(f, payload) for f, payload in prepared], timeout=timeout)

    stored = [r.value for r in results if r.ok and r.value is not None]
    failures = [
        (f.file_name, _reason(r.error))
        for (f, _), r in zip(prepared, results)
        if r.error is not None
    ]
    if failures:
        for name, reason in failures:
            logger.warning("Upload failed for %s: %s", name, reason)
        await _compensate(storage, [s.storage_key for s in stored if s.storage_key])
        raise UploadFailure(failures)

    logger.info("Upload saga stored %d file(s)", len(stored))
    return stored


def upload_attachment_set(
    files: list[PendingFile],
    storage: AttachmentStorage,
    *,
    kind: AttachmentType | None = None,
    timeout: float | None = None,
) -> list[StoredAttachment]:
    """
    Sync entry point: carry over stored files and upload the new ones.

    With ``kind`` set, every file is treated as that attachment type.
    """
    if kind is not None:
        for f in files:
            f.attachment_type = kind
    carried = carry_over_attachments(files)
    uploaded = run_async(run_upload_saga(files, storage=storage, timeout=timeout))
    return carried + uploaded
