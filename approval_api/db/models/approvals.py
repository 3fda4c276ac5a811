"""Approval requests and their stored attachments."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_api.db.base import Base, BigIntId
from approval_api.db.enums import ApprovalStatus
from approval_api.db.models._common import utcnow

if TYPE_CHECKING:
    from approval_api.db.models import FormSubmission, User


class ApprovalRequest(Base):
    """A project-approval request moving draft -> pending -> approved/rejected."""

    __tablename__ = "approval_requests"
    __table_args__ = (
        UniqueConstraint("request_no", name="uq_approval_requests_request_no"),
        UniqueConstraint("submission_id", name="uq_approval_requests_submission"),
        Index("idx_approval_requests_status", "current_status"),
        Index("idx_approval_requests_applicant", "applicant_id"),
        Index("idx_approval_requests_dept1", "dept_level1_id"),
        Index("idx_approval_requests_dept2", "dept_level2_id"),
        Index("idx_approval_requests_dept3", "dept_level3_id"),
        Index("idx_approval_requests_created", "created_at"),
        CheckConstraint(
            "(current_status IN ('approved', 'rejected')) = (completed_at IS NOT NULL)",
            name="ck_approval_requests_completed_at",
        ),
        CheckConstraint(
            "(current_status = 'draft') = (submitted_at IS NULL)",
            name="ck_approval_requests_submitted_at",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    request_no: Mapped[str] = mapped_column(String(40), nullable=False)
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    approval_content: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # Denormalized department chain; the deepest populated level is the owning department.
    dept_full_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    dept_level1_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    dept_level2_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    dept_level3_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )

    execute_date: Mapped[date] = mapped_column(Date, nullable=False)
    applicant_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    current_status: Mapped[str] = mapped_column(
        String(20),
        default=ApprovalStatus.DRAFT.value,
        server_default=text(f"'{ApprovalStatus.DRAFT.value}'"),
        nullable=False,
    )
    submission_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("form_submissions.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    applicant: Mapped["User"] = relationship()
    submission: Mapped["FormSubmission | None"] = relationship(back_populates="approval_request")
    attachments: Mapped[list["ApprovalAttachment"]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="ApprovalAttachment.id",
    )


class ApprovalAttachment(Base):
    """An uploaded file whose bytes are already durably stored."""

    __tablename__ = "approval_attachments"
    __table_args__ = (Index("idx_approval_attachments_request", "request_id"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False
    )
    attachment_type: Mapped[str] = mapped_column(String(10), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_size: Mapped[int] = mapped_column(
        BigIntId, default=0, server_default=text("0"), nullable=False
    )
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    uploader_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    request: Mapped["ApprovalRequest"] = relationship(back_populates="attachments")
