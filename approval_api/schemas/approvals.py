"""Schemas for approval requests."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from approval_api.db.enums import ApprovalAction, ApprovalStatus
from approval_api.schemas.attachments import AttachmentDescriptor, AttachmentRead


class ApprovalRequestCreate(BaseModel):
    project_name: str = Field(..., min_length=1, max_length=200)
    approval_content: str | None = None
    # Either a single department id (resolved to its chain) or explicit level ids.
    dept_id: int | None = None
    dept_level1_id: int | None = None
    dept_level2_id: int | None = None
    dept_level3_id: int | None = None
    execute_date: date
    applicant_id: int
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)


class ApprovalRequestUpdate(BaseModel):
    """
    Partial edit of a draft.

    ``actor_id`` is the editing user and must own the request. ``attachments``
    lists the stored files to keep; omit it to keep the current set.
    """

    actor_id: int
    project_name: str | None = Field(None, min_length=1, max_length=200)
    approval_content: str | None = None
    dept_id: int | None = None
    dept_level1_id: int | None = None
    dept_level2_id: int | None = None
    dept_level3_id: int | None = None
    execute_date: date | None = None
    attachments: list[AttachmentDescriptor] | None = None


class ApprovalActor(BaseModel):
    actor_id: int | None = None


class ApprovalDecision(BaseModel):
    action: ApprovalAction
    approver_id: int


class ApplicantSummary(BaseModel):
    id: int
    username: str
    real_name: str

    model_config = {"from_attributes": True}


class ApprovalRequestSummary(BaseModel):
    id: int
    request_no: str
    project_name: str
    approval_content: str | None
    dept_full_path: str | None
    dept_level1_id: int | None
    dept_level2_id: int | None
    dept_level3_id: int | None
    execute_date: date
    applicant_id: int
    current_status: ApprovalStatus
    submission_id: UUID | None
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class ApprovalRequestRead(ApprovalRequestSummary):
    applicant: ApplicantSummary | None = None
    attachments: list[AttachmentRead] = Field(default_factory=list)


class ApprovalListResponse(BaseModel):
    items: list[ApprovalRequestSummary]
    total: int
    page: int
    page_size: int
    pages: int
