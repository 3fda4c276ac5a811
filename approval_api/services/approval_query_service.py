"""Filtered, paginated listing of approval requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.orm import Session

from approval_api.db.enums import ApprovalStatus
from approval_api.db.models import ApprovalRequest
from approval_api.services import department_service
from approval_api.utils.pagination import PaginationParams, paginate_query

_LEVEL_COLUMNS = {
    1: ApprovalRequest.dept_level1_id,
    2: ApprovalRequest.dept_level2_id,
    3: ApprovalRequest.dept_level3_id,
}


@dataclass
class ApprovalFilters:
    status: ApprovalStatus | None = None
    dept_id: int | None = None
    project_name: str | None = None
    applicant_id: int | None = None
    created_from: date | None = None
    created_to: date | None = None
    completed_from: date | None = None
    completed_to: date | None = None


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _end_of(day: date) -> datetime:
    """Exclusive upper bound: midnight after ``day``."""
    return _start_of(day + timedelta(days=1))


def build_query(db: Session, filters: ApprovalFilters):
    """
    Compose the list predicate.

    A department filter matches on the level column of the department's own
    depth, so a level-1 id covers every request in its subtree. An unknown or
    disabled department means no department filter.
    """
    query = db.query(ApprovalRequest)

    if filters.status is not None:
        query = query.filter(ApprovalRequest.current_status == filters.status.value)

    if filters.project_name:
        term = filters.project_name.strip()
        if term:
            query = query.filter(ApprovalRequest.project_name.contains(term, autoescape=True))

    if filters.applicant_id is not None:
        query = query.filter(ApprovalRequest.applicant_id == filters.applicant_id)

    if filters.dept_id is not None:
        level = department_service.filter_level(db, filters.dept_id)
        if level is not None:
            query = query.filter(_LEVEL_COLUMNS[level] == filters.dept_id)

    if filters.created_from:
        query = query.filter(ApprovalRequest.created_at >= _start_of(filters.created_from))
    if filters.created_to:
        query = query.filter(ApprovalRequest.created_at < _end_of(filters.created_to))
    if filters.completed_from:
        query = query.filter(ApprovalRequest.completed_at >= _start_of(filters.completed_from))
    if filters.completed_to:
        query = query.filter(ApprovalRequest.completed_at < _end_of(filters.completed_to))

    return query


def list_requests(
    db: Session,
    filters: ApprovalFilters,
    pagination: PaginationParams,
) -> tuple[list[ApprovalRequest], int]:
    """
    List requests newest first.

    Returns:
        (requests, total_count) where the count ignores the page slice
    """
    query = build_query(db, filters).order_by(
        ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc()
    )
    return paginate_query(query, pagination)
