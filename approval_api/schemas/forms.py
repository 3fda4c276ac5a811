"""Schemas for form templates and their linked submissions."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from approval_api.db.enums import FormSubmissionStatus
from approval_api.schemas.approvals import ApprovalRequestRead
from approval_api.schemas.attachments import AttachmentDescriptor


class FormFieldOption(BaseModel):
    label: str
    value: str


class FormField(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    label: str = Field("", max_length=200)
    type: str = Field("text", max_length=50)
    required: bool = False
    options: list[FormFieldOption] | None = None

    model_config = {"extra": "allow"}


class FormSchema(BaseModel):
    title: str | None = Field(None, max_length=200)
    fields: list[FormField]

    model_config = {"extra": "allow"}


class FormTemplateCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=150)
    description: str | None = None
    form_schema: FormSchema
    created_by_id: int | None = None


class FormTemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = None
    form_schema: FormSchema | None = None


class FormTemplatePublish(BaseModel):
    is_published: bool = True


class FormTemplateSummary(BaseModel):
    id: UUID
    key: str
    name: str
    is_published: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FormTemplateRead(FormTemplateSummary):
    description: str | None
    form_schema: dict[str, object] = Field(validation_alias="schema_json")
    created_by_id: int | None


class DerivedApprovalFields(BaseModel):
    """Typed approval fields taken out of free-form submission data."""

    project_name: str = ""
    approval_content: str | None = None
    dept_id: int | None = None
    execute_date: date | None = None


class FormSubmissionCreate(BaseModel):
    data: dict[str, object]
    submitted_by: int
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)
    # Explicit approval fields; extracted from ``data`` when omitted.
    approval: DerivedApprovalFields | None = None


class FormSubmissionUpdate(BaseModel):
    data: dict[str, object]
    updater_id: int
    # Full replacement set of stored attachments.
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)
    approval: DerivedApprovalFields | None = None


class FormSubmissionRead(BaseModel):
    id: UUID
    template_id: UUID
    submitted_by: int
    status: FormSubmissionStatus
    data: dict[str, object]
    schema_snapshot: dict[str, object]
    approval_request_id: int | None = None
    created_at: datetime
    updated_at: datetime


class FormSubmissionLinkedRead(BaseModel):
    submission: FormSubmissionRead
    approval: ApprovalRequestRead


class FormSubmissionListResponse(BaseModel):
    items: list[FormSubmissionRead]
    total: int
    page: int
    page_size: int
    pages: int
