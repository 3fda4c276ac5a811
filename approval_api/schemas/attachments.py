"""Schemas for approval attachments."""

from datetime import datetime

from pydantic import BaseModel, Field

from approval_api.db.enums import AttachmentType


class AttachmentDescriptor(BaseModel):
    """A durably stored file, as returned by an upload and sent back on edit."""

    file_path: str = Field(..., min_length=1, max_length=1000)
    file_name: str = Field(..., min_length=1, max_length=255)
    attachment_type: AttachmentType
    file_size: int = Field(0, ge=0)
    mime_type: str | None = Field(None, max_length=100)

    model_config = {"from_attributes": True}


class AttachmentRead(AttachmentDescriptor):
    id: int
    request_id: int
    uploader_id: int
    created_at: datetime


class AttachmentUploadResponse(BaseModel):
    attachments: list[AttachmentDescriptor]
