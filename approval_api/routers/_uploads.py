"""Shared multipart helpers for routers that accept attachment files."""

from fastapi import HTTPException, UploadFile
from pydantic import BaseModel, ValidationError

from approval_api.db.enums import AttachmentType
from approval_api.services.attachment_upload_saga import DEFAULT_CONTENT_TYPE, PendingFile

# ApprovalAttachment.file_name and .mime_type column widths
MAX_FILE_NAME_LENGTH = 255
MAX_MIME_TYPE_LENGTH = 100


def bounded_file_name(name: str | None) -> str:
    """Client file name cut to the column width, keeping its extension."""
    name = name or "untitled"
    if len(name) <= MAX_FILE_NAME_LENGTH:
        return name
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem or len(extension) >= MAX_FILE_NAME_LENGTH // 2:
        return name[:MAX_FILE_NAME_LENGTH]
    return stem[: MAX_FILE_NAME_LENGTH - len(extension) - 1] + "." + extension


def _content_type(value: str | None) -> str:
    if not value or len(value) > MAX_MIME_TYPE_LENGTH:
        return DEFAULT_CONTENT_TYPE
    return value


def read_uploads(files: list[UploadFile] | None, kind: AttachmentType) -> list[PendingFile]:
    """Read multipart files into pending saga files of one attachment type."""
    pending: list[PendingFile] = []
    for upload in files or []:
        payload = upload.file.read()
        pending.append(
            PendingFile(
                attachment_type=kind,
                file_name=bounded_file_name(upload.filename),
                content_type=_content_type(upload.content_type),
                payload=payload,
                file_size=len(payload),
            )
        )
    return pending


def parse_payload(model: type[BaseModel], payload: str):
    """Parse the JSON ``payload`` form field of a multipart request."""
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
