"""Form template and linked submission endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from approval_api.core.deps import get_db, get_storage
from approval_api.core.errors import ReferenceNotFound
from approval_api.db.enums import AttachmentType, FormSubmissionStatus
from approval_api.db.models import FormSubmission
from approval_api.routers._uploads import parse_payload, read_uploads
from approval_api.schemas.approvals import ApprovalRequestRead
from approval_api.schemas.forms import (
    FormSubmissionCreate,
    FormSubmissionLinkedRead,
    FormSubmissionListResponse,
    FormSubmissionRead,
    FormSubmissionUpdate,
    FormTemplateCreate,
    FormTemplatePublish,
    FormTemplateRead,
    FormTemplateSummary,
    FormTemplateUpdate,
)
from approval_api.services import form_submission_service, form_template_service
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.utils.pagination import PaginatedResponse, PaginationParams, get_pagination


router = APIRouter(prefix="/forms", tags=["forms"])


def _submission_read(submission: FormSubmission) -> FormSubmissionRead:
    linked = submission.approval_request
    return FormSubmissionRead(
        id=submission.id,
        template_id=submission.template_id,
        submitted_by=submission.submitted_by,
        status=submission.status,
        data=submission.data,
        schema_snapshot=submission.schema_snapshot,
        approval_request_id=linked.id if linked else None,
        created_at=submission.created_at,
        updated_at=submission.updated_at,
    )


# =============================================================================
# Templates
# =============================================================================

@router.post("/templates", response_model=FormTemplateRead, status_code=201)
def create_template(body: FormTemplateCreate, db: Session = Depends(get_db)):
    template = form_template_service.create_template(db, body)
    return FormTemplateRead.model_validate(template)


@router.get("/templates", response_model=list[FormTemplateSummary])
def list_templates(published_only: bool = False, db: Session = Depends(get_db)):
    templates = form_template_service.list_templates(db, published_only=published_only)
    return [FormTemplateSummary.model_validate(t) for t in templates]


@router.get("/templates/{template_id}", response_model=FormTemplateRead)
def get_template(template_id: UUID, db: Session = Depends(get_db)):
    template = form_template_service.require_template(db, template_id)
    return FormTemplateRead.model_validate(template)


@router.get("/templates/by-key/{key}", response_model=FormTemplateRead)
def get_template_by_key(key: str, db: Session = Depends(get_db)):
    template = form_template_service.get_template_by_key(db, key)
    if template is None:
        raise ReferenceNotFound(
            f"Form template '{key}' not found", code="TEMPLATE_NOT_FOUND", field="key"
        )
    return FormTemplateRead.model_validate(template)


@router.patch("/templates/{template_id}", response_model=FormTemplateRead)
def update_template(template_id: UUID, body: FormTemplateUpdate, db: Session = Depends(get_db)):
    template = form_template_service.update_template(db, template_id, body)
    return FormTemplateRead.model_validate(template)


@router.post("/templates/{template_id}/publish", response_model=FormTemplateRead)
def publish_template(
    template_id: UUID,
    body: FormTemplatePublish | None = None,
    db: Session = Depends(get_db),
):
    """Publish (or with ``is_published=false`` unpublish) a template."""
    is_published = body.is_published if body else True
    template = form_template_service.set_published(db, template_id, is_published)
    return FormTemplateRead.model_validate(template)


# =============================================================================
# Submissions
# =============================================================================

@router.post(
    "/templates/{template_id}/submissions",
    response_model=FormSubmissionLinkedRead,
    status_code=201,
)
def create_submission(
    template_id: UUID,
    payload: str = Form(...),
    images: list[UploadFile] | None = File(None),
    tables: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_storage),
):
    """Submit a form and create its linked draft approval request."""
    data = parse_payload(FormSubmissionCreate, payload)
    files = read_uploads(images, AttachmentType.IMAGE) + read_uploads(tables, AttachmentType.TABLE)
    submission, request = form_submission_service.create_linked_submission(
        db, template_id, data, storage=storage, files=files
    )
    return FormSubmissionLinkedRead(
        submission=_submission_read(submission),
        approval=ApprovalRequestRead.model_validate(request),
    )


@router.put("/submissions/{submission_id}", response_model=FormSubmissionLinkedRead)
def update_submission(
    submission_id: UUID,
    payload: str = Form(...),
    images: list[UploadFile] | None = File(None),
    tables: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_storage),
):
    """Update a submission and its linked request; attachments are replaced in full."""
    data = parse_payload(FormSubmissionUpdate, payload)
    files = read_uploads(images, AttachmentType.IMAGE) + read_uploads(tables, AttachmentType.TABLE)
    submission, request = form_submission_service.update_linked_submission(
        db, submission_id, data, storage=storage, files=files
    )
    return FormSubmissionLinkedRead(
        submission=_submission_read(submission),
        approval=ApprovalRequestRead.model_validate(request),
    )


@router.get("/submissions/{submission_id}", response_model=FormSubmissionRead)
def get_submission(submission_id: UUID, db: Session = Depends(get_db)):
    return _submission_read(form_submission_service.require_submission(db, submission_id))


@router.get("/submissions", response_model=FormSubmissionListResponse)
def list_submissions(
    template_id: UUID | None = None,
    submitted_by: int | None = None,
    status: FormSubmissionStatus | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    items, total = form_submission_service.list_submissions(
        db, pagination, template_id=template_id, submitted_by=submitted_by, status=status
    )
    page = PaginatedResponse.create([_submission_read(s) for s in items], total, pagination)
    return FormSubmissionListResponse(
        items=page.items,
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        pages=page.pages,
    )
