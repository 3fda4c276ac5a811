"""Department tree: path resolution, level-id validation and the filter tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from approval_api.core.errors import ReferenceNotFound, ValidationFailed
from approval_api.db.enums import MAX_DEPARTMENT_LEVEL, DepartmentStatus
from approval_api.db.models import Department

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


@dataclass
class PathSegment:
    id: int
    name: str
    level: int


@dataclass
class DepartmentPath:
    """Resolved ancestor chain of one department, root first."""

    segments: list[PathSegment] = field(default_factory=list)

    @property
    def department_id(self) -> int:
        return self.segments[-1].id

    @property
    def level(self) -> int:
        return self.segments[-1].level

    def level_id(self, level: int) -> int | None:
        for segment in self.segments:
            if segment.level == level:
                return segment.id
        return None

    @property
    def level1_id(self) -> int | None:
        return self.level_id(1)

    @property
    def level2_id(self) -> int | None:
        return self.level_id(2)

    @property
    def level3_id(self) -> int | None:
        return self.level_id(3)

    @property
    def full_path(self) -> str:
        return PATH_SEPARATOR.join(segment.name for segment in self.segments)


def get_department(db: Session, department_id: int) -> Department | None:
    return db.get(Department, department_id)


def resolve_path(db: Session, department_id: int, *, field_name: str = "dept_id") -> DepartmentPath:
    """
    Walk parent pointers from ``department_id`` up to its root.

    Missing or disabled nodes anywhere in the chain raise ReferenceNotFound
    naming ``field_name``; a chain whose levels do not step by exactly one
    raises ValidationFailed.
    """
    chain: list[Department] = []
    current_id: int | None = department_id
    while current_id is not None:
        if len(chain) >= MAX_DEPARTMENT_LEVEL:
            raise ValidationFailed(
                f"Department {department_id} is nested deeper than {MAX_DEPARTMENT_LEVEL} levels",
                field=field_name,
            )
        node = get_department(db, current_id)
        if node is None or not node.is_enabled:
            raise ReferenceNotFound(f"Department {current_id} not found", field=field_name)
        chain.append(node)
        current_id = node.parent_id

    chain.reverse()
    for expected_level, node in enumerate(chain, start=1):
        if node.level != expected_level:
            raise ValidationFailed(
                f"Department {node.id} has level {node.level}, expected {expected_level}",
                field=field_name,
            )
    return DepartmentPath(
        segments=[PathSegment(id=node.id, name=node.dept_name, level=node.level) for node in chain]
    )


def resolve_level_ids(
    db: Session,
    level1_id: int | None,
    level2_id: int | None,
    level3_id: int | None,
) -> DepartmentPath | None:
    """
    Validate explicitly supplied level ids and return the deepest one's path.

    Every supplied id must exist, sit at its slot's level and lie on the
    chain of the deepest supplied id. Returns None when no id is supplied.
    """
    supplied = {1: level1_id, 2: level2_id, 3: level3_id}
    deepest = max((level for level, value in supplied.items() if value is not None), default=None)
    if deepest is None:
        return None

    field_name = f"dept_level{deepest}_id"
    path = resolve_path(db, supplied[deepest], field_name=field_name)
    if path.level != deepest:
        raise ValidationFailed(
            f"Department {path.department_id} is a level-{path.level} department",
            field=field_name,
        )
    for level, value in supplied.items():
        if value is not None and path.level_id(level) != value:
            raise ValidationFailed(
                f"Department {value} is not the level-{level} ancestor of department "
                f"{path.department_id}",
                field=f"dept_level{level}_id",
            )
    return path


def filter_level(db: Session, department_id: int) -> int | None:
    """
    Level of a department used as a list filter.

    Unknown or disabled departments degrade to None (no department filter).
    """
    try:
        return resolve_path(db, department_id).level
    except (ReferenceNotFound, ValidationFailed):
        logger.info("Ignoring unresolvable department filter %s", department_id)
        return None


def list_enabled_departments(db: Session) -> list[Department]:
    return (
        db.query(Department)
        .filter(Department.status == DepartmentStatus.ENABLED)
        .order_by(Department.level, Department.sort_order, Department.id)
        .all()
    )


def build_filter_tree(db: Session) -> list[dict[str, Any]]:
    """
    Enabled departments as ``{title, key, children}`` nodes, roots first.

    Built in two passes over a flat, ordered list: nodes first, then links by
    parent id. Children of a disabled parent are left out.
    """
    departments = list_enabled_departments(db)
    nodes: dict[int, dict[str, Any]] = {
        dept.id: {"title": dept.dept_name, "key": str(dept.id), "children": []}
        for dept in departments
    }
    roots: list[dict[str, Any]] = []
    for dept in departments:
        node = nodes[dept.id]
        if dept.parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(dept.parent_id)
        if parent is not None:
            parent["children"].append(node)
    return roots


def create_department(
    db: Session,
    *,
    dept_code: str,
    dept_name: str,
    parent_id: int | None = None,
    sort_order: int = 0,
    description: str | None = None,
) -> Department:
    """Add a department under ``parent_id`` (or as a root); level follows the parent."""
    level = 1
    if parent_id is not None:
        parent = get_department(db, parent_id)
        if parent is None:
            raise ReferenceNotFound(f"Department {parent_id} not found", field="parent_id")
        level = parent.level + 1
        if level > MAX_DEPARTMENT_LEVEL:
            raise ValidationFailed(
                f"Departments cannot be nested deeper than {MAX_DEPARTMENT_LEVEL} levels",
                field="parent_id",
            )
    department = Department(
        dept_code=dept_code,
        dept_name=dept_name,
        parent_id=parent_id,
        level=level,
        sort_order=sort_order,
        description=description,
    )
    db.add(department)
    db.flush()
    return department
