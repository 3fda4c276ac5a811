"""Form submissions linked one-to-one with approval requests.

A submission and the approval request it produces are created together and
edited together. Attachments are uploaded before the transaction opens, so
each transaction only persists references to files that are already stored.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import date

from sqlalchemy.orm import Session, selectinload

from approval_api.core.errors import ReferenceNotFound, ValidationFailed
from approval_api.db.enums import FormSubmissionStatus
from approval_api.db.models import ApprovalRequest, FormSubmission
from approval_api.db.unit_of_work import unit_of_work
from approval_api.schemas.approvals import ApprovalRequestCreate, ApprovalRequestUpdate
from approval_api.schemas.forms import (
    DerivedApprovalFields,
    FormSubmissionCreate,
    FormSubmissionUpdate,
)
from approval_api.services import approval_service, form_template_service, user_service
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.services.attachment_upload_saga import PendingFile
from approval_api.services.form_field_extractor import extract_approval_fields
from approval_api.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

PROJECT_NAME_MAX_LENGTH = 200


def get_submission(db: Session, submission_id: uuid.UUID) -> FormSubmission | None:
    return (
        db.query(FormSubmission)
        .options(selectinload(FormSubmission.approval_request))
        .filter(FormSubmission.id == submission_id)
        .one_or_none()
    )


def require_submission(db: Session, submission_id: uuid.UUID) -> FormSubmission:
    submission = get_submission(db, submission_id)
    if submission is None:
        raise ReferenceNotFound(
            f"Form submission {submission_id} not found", field="submission_id"
        )
    return submission


def list_submissions(
    db: Session,
    pagination: PaginationParams,
    *,
    template_id: uuid.UUID | None = None,
    submitted_by: int | None = None,
    status: FormSubmissionStatus | None = None,
) -> tuple[list[FormSubmission], int]:
    query = db.query(FormSubmission).options(selectinload(FormSubmission.approval_request))
    if template_id is not None:
        query = query.filter(FormSubmission.template_id == template_id)
    if submitted_by is not None:
        query = query.filter(FormSubmission.submitted_by == submitted_by)
    if status is not None:
        query = query.filter(FormSubmission.status == status.value)
    query = query.order_by(FormSubmission.created_at.desc(), FormSubmission.id)
    return paginate_query(query, pagination)


def _require_project_name(derived: DerivedApprovalFields) -> str:
    name = (derived.project_name or "").strip()
    if not name:
        raise ValidationFailed(
            "Project name could not be derived from the submission", field="project_name"
        )
    return name[:PROJECT_NAME_MAX_LENGTH]


def create_linked_submission(
    db: Session,
    template_id: uuid.UUID,
    data: FormSubmissionCreate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> tuple[FormSubmission, ApprovalRequest]:
    """
    Create a submission and its draft approval request in one transaction.

    Raises:
        ReferenceNotFound: template, submitter or department does not resolve
        ValidationFailed: template is not published, or no project name
        UploadFailure: an attachment failed; nothing is written
    """
    template = form_template_service.require_template(db, template_id)
    if not template.is_published:
        raise ValidationFailed(
            f"Form template {template.key} is not published",
            code="TEMPLATE_NOT_PUBLISHED",
            field="template_id",
        )
    user_service.require_user(db, data.submitted_by, field="submitter_id")

    derived = data.approval or extract_approval_fields(data.data, template.schema_json)
    approval_input = ApprovalRequestCreate(
        project_name=_require_project_name(derived),
        approval_content=derived.approval_content,
        dept_id=derived.dept_id,
        execute_date=derived.execute_date or date.today(),
        applicant_id=data.submitted_by,
        attachments=data.attachments,
    )
    prepared = approval_service.prepare_create(db, approval_input, storage=storage, files=files)

    with unit_of_work(db):
        submission = FormSubmission(
            template_id=template.id,
            schema_snapshot=copy.deepcopy(template.schema_json),
            data=data.data,
            submitted_by=data.submitted_by,
            status=FormSubmissionStatus.PENDING.value,
        )
        db.add(submission)
        db.flush()
        request = approval_service.add_request(
            db, approval_input, prepared, submission_id=submission.id
        )

    logger.info(
        "Form submission %s created with linked approval request %s (%s)",
        submission.id,
        request.id,
        request.request_no,
    )
    return require_submission(db, submission.id), approval_service.require_request(db, request.id)


def update_linked_submission(
    db: Session,
    submission_id: uuid.UUID,
    data: FormSubmissionUpdate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> tuple[FormSubmission, ApprovalRequest]:
    """
    Update submission data, the linked request's derived fields and its full
    attachment set in one transaction.

    A submission without a linked request is a data-integrity fault and
    raises ReferenceNotFound with code APPROVAL_NOT_FOUND.
    """
    submission = require_submission(db, submission_id)
    request = submission.approval_request
    if request is None:
        raise ReferenceNotFound(
            f"Form submission {submission_id} has no linked approval request",
            code="APPROVAL_NOT_FOUND",
            field="submission_id",
        )
    user_service.require_user(db, data.updater_id, field="updater_id")

    derived = data.approval or extract_approval_fields(data.data, submission.schema_snapshot)
    update = ApprovalRequestUpdate(
        actor_id=data.updater_id,
        project_name=_require_project_name(derived),
        approval_content=derived.approval_content,
        dept_id=derived.dept_id,
        execute_date=derived.execute_date or date.today(),
        attachments=data.attachments,
    )
    request = approval_service.require_request(db, request.id)
    prepared = approval_service.prepare_edit(db, request, update, storage=storage, files=files)

    with unit_of_work(db):
        request = approval_service.apply_edit(db, request.id, update, prepared)
        submission.data = data.data

    logger.info(
        "Form submission %s updated with linked approval request %s", submission_id, request.id
    )
    return require_submission(db, submission_id), approval_service.require_request(db, request.id)
