"""Dynamic form templates and their submissions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_api.db.base import Base, BigIntId, JSONDocument
from approval_api.db.enums import FormSubmissionStatus
from approval_api.db.models._common import utcnow

if TYPE_CHECKING:
    from approval_api.db.models import ApprovalRequest, User


class FormTemplate(Base):
    """Schema-driven form configuration."""

    __tablename__ = "form_templates"
    __table_args__ = (UniqueConstraint("key", name="uq_form_templates_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    schema_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    is_published: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("FALSE"), nullable=False
    )
    created_by_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class FormSubmission(Base):
    """Submitted form data plus the schema it was submitted against."""

    __tablename__ = "form_submissions"
    __table_args__ = (
        Index("idx_form_submissions_template", "template_id"),
        Index("idx_form_submissions_submitter", "submitted_by"),
        Index("idx_form_submissions_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("form_templates.id", ondelete="RESTRICT"), nullable=False
    )
    schema_snapshot: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    data: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    submitted_by: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=FormSubmissionStatus.PENDING.value,
        server_default=text(f"'{FormSubmissionStatus.PENDING.value}'"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    template: Mapped["FormTemplate"] = relationship()
    submitter: Mapped["User"] = relationship()
    approval_request: Mapped["ApprovalRequest | None"] = relationship(
        back_populates="submission", uselist=False
    )
