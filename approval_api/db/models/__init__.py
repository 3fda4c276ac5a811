"""SQLAlchemy ORM models."""

from approval_api.db.models.approvals import ApprovalAttachment, ApprovalRequest
from approval_api.db.models.auth import User
from approval_api.db.models.departments import Department
from approval_api.db.models.forms import FormSubmission, FormTemplate

__all__ = [
    "ApprovalAttachment",
    "ApprovalRequest",
    "Department",
    "FormSubmission",
    "FormTemplate",
    "User",
]
