"""User accounts referenced by approval requests and form submissions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, String, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from approval_api.db.base import Base, BigIntId
from approval_api.db.enums import Role
from approval_api.db.models._common import utcnow


class User(Base):
    """Applicant or approver. Authentication lives outside this service."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", name="uq_users_username"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    real_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=Role.APPLICANT.value, server_default=text(f"'{Role.APPLICANT.value}'"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("TRUE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
