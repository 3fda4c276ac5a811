"""Approval request endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from approval_api.core.deps import get_db, get_storage
from approval_api.db.enums import ApprovalStatus, AttachmentType
from approval_api.routers._uploads import parse_payload, read_uploads
from approval_api.schemas.approvals import (
    ApprovalActor,
    ApprovalDecision,
    ApprovalListResponse,
    ApprovalRequestCreate,
    ApprovalRequestRead,
    ApprovalRequestSummary,
    ApprovalRequestUpdate,
)
from approval_api.services import approval_query_service, approval_service
from approval_api.services.approval_query_service import ApprovalFilters
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.utils.pagination import PaginatedResponse, PaginationParams, get_pagination


router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("", response_model=ApprovalListResponse)
def list_approvals(
    status: ApprovalStatus | None = None,
    dept_id: int | None = None,
    project_name: str | None = Query(None, max_length=200),
    applicant_id: int | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
    completed_from: date | None = None,
    completed_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List approval requests, newest first."""
    filters = ApprovalFilters(
        status=status,
        dept_id=dept_id,
        project_name=project_name,
        applicant_id=applicant_id,
        created_from=created_from,
        created_to=created_to,
        completed_from=completed_from,
        completed_to=completed_to,
    )
    items, total = approval_query_service.list_requests(db, filters, pagination)
    page = PaginatedResponse.create(
        [ApprovalRequestSummary.model_validate(item) for item in items], total, pagination
    )
    return ApprovalListResponse(
        items=page.items,
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        pages=page.pages,
    )


@router.post("", response_model=ApprovalRequestRead, status_code=201)
def create_approval(
    payload: str = Form(...),
    images: list[UploadFile] | None = File(None),
    tables: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_storage),
):
    """
    Create a draft approval request.

    ``payload`` is the JSON request body; ``images`` and ``tables`` are new
    files uploaded all-or-nothing before the request is saved.
    """
    data = parse_payload(ApprovalRequestCreate, payload)
    files = read_uploads(images, AttachmentType.IMAGE) + read_uploads(tables, AttachmentType.TABLE)
    request = approval_service.create_request(db, data, storage=storage, files=files)
    return ApprovalRequestRead.model_validate(request)


@router.get("/{request_id}", response_model=ApprovalRequestRead)
def get_approval(request_id: int, db: Session = Depends(get_db)):
    request = approval_service.require_request(db, request_id)
    return ApprovalRequestRead.model_validate(request)


@router.put("/{request_id}", response_model=ApprovalRequestRead)
def update_approval(
    request_id: int,
    payload: str = Form(...),
    images: list[UploadFile] | None = File(None),
    tables: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_storage),
):
    """Edit a draft. ``payload.attachments`` lists the stored files to keep."""
    data = parse_payload(ApprovalRequestUpdate, payload)
    files = read_uploads(images, AttachmentType.IMAGE) + read_uploads(tables, AttachmentType.TABLE)
    request = approval_service.edit_request(db, request_id, data, storage=storage, files=files)
    return ApprovalRequestRead.model_validate(request)


@router.post("/{request_id}/submit", response_model=ApprovalRequestRead)
def submit_approval(
    request_id: int,
    body: ApprovalActor | None = None,
    db: Session = Depends(get_db),
):
    actor_id = body.actor_id if body else None
    request = approval_service.submit_request(db, request_id, actor_id=actor_id)
    return ApprovalRequestRead.model_validate(request)


@router.post("/{request_id}/decision", response_model=ApprovalRequestRead)
def decide_approval(
    request_id: int,
    body: ApprovalDecision,
    db: Session = Depends(get_db),
):
    request = approval_service.decide_request(db, request_id, body.action, body.approver_id)
    return ApprovalRequestRead.model_validate(request)


@router.delete("/{request_id}", response_model=ApprovalRequestRead)
def delete_approval(
    request_id: int,
    actor_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Delete a draft and its attachments; returns the deleted request."""
    return approval_service.delete_request(db, request_id, actor_id=actor_id)
