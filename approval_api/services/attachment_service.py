"""Attachment rows: reads, wholesale replacement, storage cleanup on rollback."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import delete, event
from sqlalchemy.orm import Session

from approval_api.core.errors import CompensationFailure, ReferenceNotFound
from approval_api.db.models import ApprovalAttachment, ApprovalRequest
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.services.attachment_upload_saga import StoredAttachment

logger = logging.getLogger(__name__)

_PENDING_KEYS = "approval_api.pending_storage_keys"
_LISTENING = "approval_api.storage_cleanup_listening"


def _pending(db: Session) -> dict[str, AttachmentStorage]:
    return db.info.setdefault(_PENDING_KEYS, {})


def _cleanup_after_rollback(session: Session, previous_transaction) -> None:
    if previous_transaction.nested:
        return
    pending: dict[str, AttachmentStorage] = session.info.pop(_PENDING_KEYS, {})
    if not pending:
        return
    by_storage: dict[int, tuple[AttachmentStorage, list[str]]] = {}
    for key, storage in pending.items():
        by_storage.setdefault(id(storage), (storage, []))[1].append(key)
    for storage, keys in by_storage.values():
        try:
            storage.delete_keys(keys)
        except CompensationFailure as exc:
            logger.error(
                "Rollback cleanup left %d orphaned storage object(s): %s (%s)",
                len(exc.keys),
                ", ".join(exc.keys),
                exc.reason,
            )
        except Exception as exc:
            logger.error(
                "Rollback cleanup failed, %d storage object(s) may be orphaned: %s (%s)",
                len(keys),
                ", ".join(keys),
                str(exc) or exc.__class__.__name__,
            )
        else:
            logger.info("Rollback cleanup removed %d storage object(s)", len(keys))


def _forget_after_commit(session: Session) -> None:
    session.info.pop(_PENDING_KEYS, None)


def register_storage_cleanup_on_rollback(
    db: Session, storage: AttachmentStorage, keys: Iterable[str]
) -> None:
    """
    Delete the given objects if the session's transaction rolls back.

    Called right after a successful upload saga, before the rows that
    reference the objects are committed. A commit drops the registration.
    """
    pending = _pending(db)
    for key in keys:
        pending[key] = storage
    if not db.info.get(_LISTENING):
        event.listen(db, "after_soft_rollback", _cleanup_after_rollback)
        event.listen(db, "after_commit", _forget_after_commit)
        db.info[_LISTENING] = True


def get_attachment(db: Session, attachment_id: int) -> ApprovalAttachment | None:
    return db.get(ApprovalAttachment, attachment_id)


def require_attachment(db: Session, attachment_id: int) -> ApprovalAttachment:
    attachment = get_attachment(db, attachment_id)
    if attachment is None:
        raise ReferenceNotFound(f"Attachment {attachment_id} not found", field="attachment_id")
    return attachment


def replace_attachments(
    db: Session,
    request: ApprovalRequest,
    stored: list[StoredAttachment],
    *,
    uploader_id: int,
) -> list[ApprovalAttachment]:
    """
    Delete every attachment row of ``request`` and insert ``stored`` in its place.

    Must run inside the caller's unit of work; the set is never merged.
    """
    db.execute(delete(ApprovalAttachment).where(ApprovalAttachment.request_id == request.id))
    db.expire(request, ["attachments"])
    rows = [
        ApprovalAttachment(
            request_id=request.id,
            attachment_type=item.attachment_type.value,
            file_name=item.file_name,
            file_path=item.file_path,
            file_size=item.file_size,
            mime_type=item.mime_type,
            uploader_id=uploader_id,
        )
        for item in stored
    ]
    db.add_all(rows)
    db.flush()
    return rows
