"""Schemas for the department tree."""

from pydantic import BaseModel


class DepartmentTreeNode(BaseModel):
    title: str
    key: str
    children: list["DepartmentTreeNode"] = []


class DepartmentPathSegment(BaseModel):
    id: int
    name: str
    level: int

    model_config = {"from_attributes": True}


class DepartmentPathRead(BaseModel):
    department_id: int
    level: int
    dept_level1_id: int | None
    dept_level2_id: int | None
    dept_level3_id: int | None
    dept_full_path: str
    segments: list[DepartmentPathSegment]
