"""Department tree (fixed depth, parent pointers)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, SmallInteger, String, Text, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_api.db.base import Base, BigIntId
from approval_api.db.enums import DepartmentStatus
from approval_api.db.models._common import utcnow


class Department(Base):
    """A node in the department tree. Roots have level 1 and no parent."""

    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("dept_code", name="uq_departments_code"),
        Index("idx_departments_parent", "parent_id"),
        Index("idx_departments_level_sort", "level", "sort_order"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    dept_code: Mapped[str] = mapped_column(String(50), nullable=False)
    dept_name: Mapped[str] = mapped_column(String(100), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=True
    )
    level: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    sort_order: Mapped[int] = mapped_column(
        SmallInteger, default=0, server_default=text("0"), nullable=False
    )
    status: Mapped[int] = mapped_column(
        SmallInteger,
        default=DepartmentStatus.ENABLED.value,
        server_default=text(str(DepartmentStatus.ENABLED.value)),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    parent: Mapped["Department | None"] = relationship(remote_side=[id])

    @property
    def is_enabled(self) -> bool:
        return self.status == DepartmentStatus.ENABLED
