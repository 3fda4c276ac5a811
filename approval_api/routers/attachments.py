"""Attachment endpoints: standalone set upload and lookup."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from approval_api.core.deps import get_db, get_storage
from approval_api.db.enums import AttachmentType
from approval_api.routers._uploads import read_uploads
from approval_api.schemas.attachments import (
    AttachmentDescriptor,
    AttachmentRead,
    AttachmentUploadResponse,
)
from approval_api.services import attachment_service
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.services.attachment_upload_saga import upload_attachment_set


router = APIRouter(prefix="/attachments", tags=["attachments"])


@router.post("/upload", response_model=AttachmentUploadResponse)
def upload_attachments(
    files: Annotated[list[UploadFile], File()],
    kind: AttachmentType = Query(...),
    storage: AttachmentStorage = Depends(get_storage),
):
    """
    Upload a set of files all-or-nothing.

    The returned descriptors can be sent back as ``attachments`` when a
    request is created or edited.
    """
    stored = upload_attachment_set(read_uploads(files, kind), storage, kind=kind)
    return AttachmentUploadResponse(
        attachments=[
            AttachmentDescriptor(
                file_path=item.file_path,
                file_name=item.file_name,
                attachment_type=item.attachment_type,
                file_size=item.file_size,
                mime_type=item.mime_type,
            )
            for item in stored
        ]
    )


@router.get("/{attachment_id}", response_model=AttachmentRead)
def get_attachment(attachment_id: int, db: Session = Depends(get_db)):
    return AttachmentRead.model_validate(attachment_service.require_attachment(db, attachment_id))
