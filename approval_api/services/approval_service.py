"""Approval request lifecycle: create, edit, submit, decide, delete.

States only move forward: draft -> pending -> approved | rejected. Department
input is resolved first, attachments are uploaded next, and only then is
anything written, inside one unit of work per operation.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.orm import Session, selectinload

from approval_api.core.config import settings
from approval_api.core.errors import (
    ActionForbidden,
    InvalidStateTransition,
    ReferenceNotFound,
    ValidationFailed,
)
from approval_api.db.enums import ApprovalAction, ApprovalStatus, Role
from approval_api.db.models import ApprovalRequest
from approval_api.db.unit_of_work import unit_of_work
from approval_api.schemas.approvals import (
    ApprovalRequestCreate,
    ApprovalRequestRead,
    ApprovalRequestUpdate,
)
from approval_api.schemas.attachments import AttachmentDescriptor
from approval_api.services import attachment_service, department_service, user_service
from approval_api.services.attachment_storage import AttachmentStorage
from approval_api.services.attachment_upload_saga import (
    PendingFile,
    StoredAttachment,
    upload_attachment_set,
)
from approval_api.services.department_service import DepartmentPath

logger = logging.getLogger(__name__)

REQUEST_NUMBER_PREFIX = "APP"
_DEPARTMENT_FIELDS = ("dept_id", "dept_level1_id", "dept_level2_id", "dept_level3_id")


@dataclass
class DepartmentInput:
    dept_id: int | None = None
    dept_level1_id: int | None = None
    dept_level2_id: int | None = None
    dept_level3_id: int | None = None


# =============================================================================
# Shared helpers (also used by the form submission linkage)
# =============================================================================


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_request_number(db: Session) -> str:
    """
    ``APP`` followed by the current epoch milliseconds.

    Bumps the millisecond value while the number is already taken; the unique
    constraint on ``request_no`` stays the final guard.
    """
    stamp = int(time.time() * 1000)
    while True:
        candidate = f"{REQUEST_NUMBER_PREFIX}{stamp}"
        taken = (
            db.query(ApprovalRequest.id).filter(ApprovalRequest.request_no == candidate).first()
        )
        if taken is None:
            return candidate
        stamp += 1


def check_content(approval_content: str | None) -> None:
    limit = settings.APPROVAL_CONTENT_MAX_LENGTH
    if approval_content is not None and len(approval_content) > limit:
        raise ValidationFailed(
            f"Approval content must be at most {limit} characters",
            field="approval_content",
        )


def check_project_name(project_name: str | None) -> None:
    if project_name is not None and not project_name.strip():
        raise ValidationFailed("Project name is required", field="project_name")


def resolve_department_input(db: Session, dept: DepartmentInput) -> DepartmentPath | None:
    """A single department id wins; otherwise explicit level ids are validated."""
    if dept.dept_id is not None:
        return department_service.resolve_path(db, dept.dept_id, field_name="dept_id")
    return department_service.resolve_level_ids(
        db, dept.dept_level1_id, dept.dept_level2_id, dept.dept_level3_id
    )


def apply_department(request: ApprovalRequest, path: DepartmentPath | None) -> None:
    if path is None:
        request.dept_level1_id = None
        request.dept_level2_id = None
        request.dept_level3_id = None
        request.dept_full_path = None
        return
    request.dept_level1_id = path.level1_id
    request.dept_level2_id = path.level2_id
    request.dept_level3_id = path.level3_id
    request.dept_full_path = path.full_path


def pending_from_descriptors(descriptors: list[AttachmentDescriptor]) -> list[PendingFile]:
    return [
        PendingFile(
            attachment_type=d.attachment_type,
            file_name=d.file_name,
            content_type=d.mime_type or "application/octet-stream",
            file_path=d.file_path,
            file_size=d.file_size,
        )
        for d in descriptors
    ]


def store_attachments(
    db: Session,
    files: list[PendingFile],
    storage: AttachmentStorage,
) -> list[StoredAttachment]:
    """
    Run the upload saga and arm storage cleanup for the new objects.

    If the caller's transaction later rolls back, the freshly uploaded
    objects are deleted again.
    """
    stored = upload_attachment_set(files, storage)
    new_keys = [item.storage_key for item in stored if item.storage_key]
    if new_keys:
        attachment_service.register_storage_cleanup_on_rollback(db, storage, new_keys)
    return stored


def _load_request(db: Session, request_id: int, *, for_update: bool = False) -> ApprovalRequest | None:
    query = (
        db.query(ApprovalRequest)
        .options(selectinload(ApprovalRequest.attachments), selectinload(ApprovalRequest.applicant))
        .filter(ApprovalRequest.id == request_id)
    )
    if for_update:
        query = query.with_for_update(of=ApprovalRequest).populate_existing()
    return query.one_or_none()


def _require_status(request: ApprovalRequest, required: ApprovalStatus, action: str) -> None:
    if request.current_status != required.value:
        raise InvalidStateTransition(
            f"Cannot {action} request {request.request_no}: status is "
            f"'{request.current_status}', expected '{required.value}'",
            current_status=request.current_status,
            required_status=required.value,
        )


def _require_owner(request: ApprovalRequest, actor_id: int | None) -> None:
    if actor_id is not None and request.applicant_id != actor_id:
        raise ActionForbidden(
            f"Only the applicant can change request {request.request_no}",
            field="actor_id",
        )


# =============================================================================
# Reads
# =============================================================================


def get_request(db: Session, request_id: int) -> ApprovalRequest | None:
    """Get an approval request with its applicant and attachments."""
    return _load_request(db, request_id)


def require_request(db: Session, request_id: int) -> ApprovalRequest:
    request = get_request(db, request_id)
    if request is None:
        raise ReferenceNotFound(f"Approval request {request_id} not found", field="request_id")
    return request


# =============================================================================
# Transitions
# =============================================================================


@dataclass
class PreparedCreate:
    """Validated create input whose attachments are already stored."""

    applicant_id: int
    path: DepartmentPath | None
    stored: list[StoredAttachment] = field(default_factory=list)


@dataclass
class PreparedEdit:
    """Validated edit input whose new attachments are already stored."""

    actor_id: int
    fields_set: set[str]
    department_changed: bool = False
    path: DepartmentPath | None = None
    attachments_changed: bool = False
    stored: list[StoredAttachment] = field(default_factory=list)


def prepare_create(
    db: Session,
    data: ApprovalRequestCreate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> PreparedCreate:
    """Validate, resolve the department, then upload. Writes nothing."""
    check_project_name(data.project_name)
    check_content(data.approval_content)
    applicant = user_service.require_user(db, data.applicant_id, field="applicant_id")
    path = resolve_department_input(
        db,
        DepartmentInput(
            dept_id=data.dept_id,
            dept_level1_id=data.dept_level1_id,
            dept_level2_id=data.dept_level2_id,
            dept_level3_id=data.dept_level3_id,
        ),
    )
    candidates = pending_from_descriptors(data.attachments) + list(files or [])
    stored = store_attachments(db, candidates, storage) if candidates else []
    return PreparedCreate(applicant_id=applicant.id, path=path, stored=stored)


def add_request(
    db: Session,
    data: ApprovalRequestCreate,
    prepared: PreparedCreate,
    *,
    submission_id: uuid.UUID | None = None,
) -> ApprovalRequest:
    """Insert the draft row and its attachments. Caller owns the transaction."""
    request = ApprovalRequest(
        request_no=generate_request_number(db),
        project_name=data.project_name.strip(),
        approval_content=data.approval_content,
        execute_date=data.execute_date,
        applicant_id=prepared.applicant_id,
        current_status=ApprovalStatus.DRAFT.value,
        submission_id=submission_id,
    )
    apply_department(request, prepared.path)
    db.add(request)
    db.flush()
    if prepared.stored:
        attachment_service.replace_attachments(
            db, request, prepared.stored, uploader_id=prepared.applicant_id
        )
    return request


def create_request(
    db: Session,
    data: ApprovalRequestCreate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> ApprovalRequest:
    """
    Create a draft request.

    Args:
        data: request fields; ``data.attachments`` are carried-over stored files
        storage: object storage used for new files
        files: new files to upload before the row is written

    Raises:
        ReferenceNotFound: applicant or department does not resolve
        ValidationFailed: content too long or inconsistent department levels
        UploadFailure: any new file failed; nothing is written
    """
    prepared = prepare_create(db, data, storage=storage, files=files)
    with unit_of_work(db):
        request = add_request(db, data, prepared)

    logger.info(
        "Approval request %s (%s) created with %d attachment(s)",
        request.id,
        request.request_no,
        len(prepared.stored),
    )
    return require_request(db, request.id)


def prepare_edit(
    db: Session,
    request: ApprovalRequest,
    data: ApprovalRequestUpdate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> PreparedEdit:
    """Check state and owner, validate, resolve the department, upload. Writes nothing."""
    _require_status(request, ApprovalStatus.DRAFT, "edit")
    _require_owner(request, data.actor_id)
    user_service.require_user(db, data.actor_id, field="actor_id")

    fields_set = set(data.model_fields_set)
    if "project_name" in fields_set:
        if data.project_name is None:
            raise ValidationFailed("Project name is required", field="project_name")
        check_project_name(data.project_name)
    if "approval_content" in fields_set:
        check_content(data.approval_content)

    prepared = PreparedEdit(actor_id=data.actor_id, fields_set=fields_set)
    prepared.department_changed = any(name in fields_set for name in _DEPARTMENT_FIELDS)
    if prepared.department_changed:
        prepared.path = resolve_department_input(
            db,
            DepartmentInput(
                dept_id=data.dept_id,
                dept_level1_id=data.dept_level1_id,
                dept_level2_id=data.dept_level2_id,
                dept_level3_id=data.dept_level3_id,
            ),
        )

    new_files = list(files or [])
    prepared.attachments_changed = data.attachments is not None or bool(new_files)
    if prepared.attachments_changed:
        if data.attachments is not None:
            kept = pending_from_descriptors(data.attachments)
        else:
            kept = pending_from_descriptors(
                [AttachmentDescriptor.model_validate(a) for a in request.attachments]
            )
        candidates = kept + new_files
        prepared.stored = store_attachments(db, candidates, storage) if candidates else []
    return prepared


def apply_edit(
    db: Session,
    request_id: int,
    data: ApprovalRequestUpdate,
    prepared: PreparedEdit,
) -> ApprovalRequest:
    """
    Re-read the request under lock and apply a prepared edit.

    Caller owns the transaction. The status is checked again so a request
    submitted meanwhile is not edited.
    """
    request = _load_request(db, request_id, for_update=True)
    if request is None:
        raise ReferenceNotFound(f"Approval request {request_id} not found", field="request_id")
    _require_status(request, ApprovalStatus.DRAFT, "edit")

    if "project_name" in prepared.fields_set:
        request.project_name = data.project_name.strip()
    if "approval_content" in prepared.fields_set:
        request.approval_content = data.approval_content
    if "execute_date" in prepared.fields_set and data.execute_date is not None:
        request.execute_date = data.execute_date
    if prepared.department_changed:
        apply_department(request, prepared.path)
    if prepared.attachments_changed:
        attachment_service.replace_attachments(
            db, request, prepared.stored, uploader_id=prepared.actor_id
        )
    request.updated_at = _now()
    return request


def edit_request(
    db: Session,
    request_id: int,
    data: ApprovalRequestUpdate,
    *,
    storage: AttachmentStorage,
    files: list[PendingFile] | None = None,
) -> ApprovalRequest:
    """
    Edit a draft owned by ``data.actor_id``.

    When attachments change (a kept list is given or new files are sent) the
    whole attachment set is replaced; otherwise it is left alone. Status never
    changes here.
    """
    request = require_request(db, request_id)
    prepared = prepare_edit(db, request, data, storage=storage, files=files)
    with unit_of_work(db):
        request = apply_edit(db, request_id, data, prepared)

    logger.info("Approval request %s (%s) edited", request.id, request.request_no)
    return require_request(db, request_id)


def submit_request(db: Session, request_id: int, *, actor_id: int | None = None) -> ApprovalRequest:
    """Move a draft to pending and stamp ``submitted_at``."""
    with unit_of_work(db):
        request = _load_request(db, request_id, for_update=True)
        if request is None:
            raise ReferenceNotFound(f"Approval request {request_id} not found", field="request_id")
        _require_status(request, ApprovalStatus.DRAFT, "submit")
        _require_owner(request, actor_id)
        request.current_status = ApprovalStatus.PENDING.value
        request.submitted_at = _now()

    logger.info("Approval request %s (%s) submitted", request.id, request.request_no)
    return request


def decide_request(
    db: Session,
    request_id: int,
    action: ApprovalAction,
    approver_id: int,
) -> ApprovalRequest:
    """
    Approve or reject a pending request and stamp ``completed_at``.

    Raises:
        ReferenceNotFound: request or approver does not resolve
        ActionForbidden: approver is neither approver nor admin
        InvalidStateTransition: request is not pending
    """
    with unit_of_work(db):
        user_service.require_user(db, approver_id, field="approver_id", roles=Role.deciders())
        request = _load_request(db, request_id, for_update=True)
        if request is None:
            raise ReferenceNotFound(f"Approval request {request_id} not found", field="request_id")
        _require_status(request, ApprovalStatus.PENDING, action.value)
        request.current_status = action.resulting_status.value
        request.completed_at = _now()

    logger.info(
        "Approval request %s (%s) %s by user %s",
        request.id,
        request.request_no,
        request.current_status,
        approver_id,
    )
    return request


def delete_request(
    db: Session, request_id: int, *, actor_id: int | None = None
) -> ApprovalRequestRead:
    """
    Delete a request and its attachment rows together; return what was deleted.

    Non-draft requests are refused while APPROVAL_DELETE_REQUIRES_DRAFT is on.
    """
    with unit_of_work(db):
        request = _load_request(db, request_id, for_update=True)
        if request is None:
            raise ReferenceNotFound(f"Approval request {request_id} not found", field="request_id")
        if settings.APPROVAL_DELETE_REQUIRES_DRAFT:
            _require_status(request, ApprovalStatus.DRAFT, "delete")
        _require_owner(request, actor_id)
        snapshot = ApprovalRequestRead.model_validate(request)
        db.delete(request)

    logger.info(
        "Approval request %s (%s) deleted with %d attachment(s)",
        snapshot.id,
        snapshot.request_no,
        len(snapshot.attachments),
    )
    return snapshot
