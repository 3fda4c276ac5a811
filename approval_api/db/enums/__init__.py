"""Enum definitions for application constants."""

from approval_api.db.enums.approvals import ApprovalAction, ApprovalStatus, AttachmentType
from approval_api.db.enums.auth import Role
from approval_api.db.enums.departments import MAX_DEPARTMENT_LEVEL, DepartmentStatus
from approval_api.db.enums.forms import FormSubmissionStatus

__all__ = [
    "ApprovalAction",
    "ApprovalStatus",
    "AttachmentType",
    "DepartmentStatus",
    "FormSubmissionStatus",
    "MAX_DEPARTMENT_LEVEL",
    "Role",
]
