"""Department tree endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from approval_api.core.deps import get_db
from approval_api.schemas.departments import (
    DepartmentPathRead,
    DepartmentPathSegment,
    DepartmentTreeNode,
)
from approval_api.services import department_service


router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("/tree", response_model=list[DepartmentTreeNode])
def department_tree(db: Session = Depends(get_db)):
    """Enabled departments as a filter tree (``key`` is the id as a string)."""
    return department_service.build_filter_tree(db)


@router.get("/{department_id}/path", response_model=DepartmentPathRead)
def department_path(department_id: int, db: Session = Depends(get_db)):
    path = department_service.resolve_path(db, department_id)
    return DepartmentPathRead(
        department_id=path.department_id,
        level=path.level,
        dept_level1_id=path.level1_id,
        dept_level2_id=path.level2_id,
        dept_level3_id=path.level3_id,
        dept_full_path=path.full_path,
        segments=[DepartmentPathSegment.model_validate(s) for s in path.segments],
    )
