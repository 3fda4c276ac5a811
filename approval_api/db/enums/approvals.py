"""Approval workflow enums."""

from enum import Enum


class ApprovalStatus(str, Enum):
    """Lifecycle of an approval request. Transitions only move forward."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def terminal(cls) -> set["ApprovalStatus"]:
        return {cls.APPROVED, cls.REJECTED}


class ApprovalAction(str, Enum):
    """Decision an approver takes on a pending request."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ApprovalStatus:
        return ApprovalStatus.APPROVED if self is ApprovalAction.APPROVE else ApprovalStatus.REJECTED


class AttachmentType(str, Enum):
    """Kind of attachment group; drives pre-upload processing."""

    IMAGE = "image"
    TABLE = "table"
