"""Derive typed approval fields from dynamic form data."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from approval_api.core.config import settings
from approval_api.schemas.forms import DerivedApprovalFields

PROJECT_KEYS = ("project", "name", "title")
PROJECT_LABELS = ("project", "项目", "名称")
CONTENT_TYPES = ("textarea",)
CONTENT_KEYS = ("content", "description", "remark")
CONTENT_LABELS = ("content", "description", "remark", "内容", "描述", "备注")
DEPT_TYPES = ("treeSelect", "department")
DEPT_KEYS = ("dept", "department")
DEPT_LABELS = ("department", "部门")
DATE_TYPES = ("date",)
DATE_KEYS = ("date", "time")
DATE_LABELS = ("date", "日期", "时间")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _matches(field: dict, types: tuple[str, ...], keys: tuple[str, ...], labels: tuple[str, ...]) -> bool:
    field_type = str(field.get("type") or "")
    key = str(field.get("key") or "").lower()
    label = str(field.get("label") or "").lower()
    return (
        field_type in types
        or any(k in key for k in keys)
        or any(lab.lower() in label for lab in labels)
    )


def _as_department_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, list) and value:
        # Cascader values hold the chain; the last element is the chosen node.
        return _as_department_id(value[-1])
    if isinstance(value, dict):
        return _as_department_id(value.get("value") or value.get("key"))
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def extract_approval_fields(data: dict[str, Any], schema: dict[str, Any] | None) -> DerivedApprovalFields:
    """
    Walk the schema's fields in order and take the first non-empty value that
    looks like each approval field.

    Content is cut to the configured maximum length; an empty project name
    falls back to the schema title.
    """
    schema = schema or {}
    project_name = ""
    content: str | None = None
    dept_id: int | None = None
    execute_date: date | None = None

    for field in schema.get("fields") or []:
        if not isinstance(field, dict):
            continue
        value = data.get(field.get("key"))
        if _is_empty(value):
            continue

        if not project_name and _matches(field, (), PROJECT_KEYS, PROJECT_LABELS):
            project_name = str(value).strip()

        if content is None and _matches(field, CONTENT_TYPES, CONTENT_KEYS, CONTENT_LABELS):
            content = str(value)[: settings.APPROVAL_CONTENT_MAX_LENGTH]

        if dept_id is None and _matches(field, DEPT_TYPES, DEPT_KEYS, DEPT_LABELS):
            dept_id = _as_department_id(value)

        if execute_date is None and _matches(field, DATE_TYPES, DATE_KEYS, DATE_LABELS):
            execute_date = _as_date(value)

    if not project_name and schema.get("title"):
        project_name = str(schema["title"])

    return DerivedApprovalFields(
        project_name=project_name,
        approval_content=content,
        dept_id=dept_id,
        execute_date=execute_date,
    )
