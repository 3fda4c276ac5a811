"""Form template lifecycle: create, update, publish, read."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from approval_api.core.errors import PersistenceConflict, ReferenceNotFound
from approval_api.db.models import FormTemplate
from approval_api.db.unit_of_work import unit_of_work
from approval_api.schemas.forms import FormTemplateCreate, FormTemplateUpdate
from approval_api.services import user_service

logger = logging.getLogger(__name__)


def get_template(db: Session, template_id: uuid.UUID) -> FormTemplate | None:
    return db.get(FormTemplate, template_id)


def get_template_by_key(db: Session, key: str) -> FormTemplate | None:
    return db.query(FormTemplate).filter(FormTemplate.key == key).first()


def require_template(db: Session, template_id: uuid.UUID) -> FormTemplate:
    template = get_template(db, template_id)
    if template is None:
        raise ReferenceNotFound(
            f"Form template {template_id} not found",
            code="TEMPLATE_NOT_FOUND",
            field="template_id",
        )
    return template


def list_templates(db: Session, *, published_only: bool = False) -> list[FormTemplate]:
    query = db.query(FormTemplate)
    if published_only:
        query = query.filter(FormTemplate.is_published.is_(True))
    return query.order_by(FormTemplate.created_at.desc(), FormTemplate.key).all()


def create_template(db: Session, data: FormTemplateCreate) -> FormTemplate:
    if get_template_by_key(db, data.key) is not None:
        raise PersistenceConflict(
            f"Form template key '{data.key}' already exists",
            code="UNIQUE_CONSTRAINT",
            field="key",
        )
    if data.created_by_id is not None:
        user_service.require_user(db, data.created_by_id, field="created_by_id")

    with unit_of_work(db):
        template = FormTemplate(
            key=data.key,
            name=data.name,
            description=data.description,
            schema_json=data.form_schema.model_dump(exclude_none=True),
            created_by_id=data.created_by_id,
        )
        db.add(template)
        db.flush()

    logger.info("Form template %s (%s) created", template.id, template.key)
    return template


def update_template(db: Session, template_id: uuid.UUID, data: FormTemplateUpdate) -> FormTemplate:
    """Update name/description/schema. Existing submissions keep their snapshot."""
    with unit_of_work(db):
        template = require_template(db, template_id)
        fields_set = data.model_fields_set
        if "name" in fields_set and data.name is not None:
            template.name = data.name
        if "description" in fields_set:
            template.description = data.description
        if "form_schema" in fields_set and data.form_schema is not None:
            template.schema_json = data.form_schema.model_dump(exclude_none=True)

    return template


def set_published(db: Session, template_id: uuid.UUID, is_published: bool) -> FormTemplate:
    with unit_of_work(db):
        template = require_template(db, template_id)
        template.is_published = is_published

    logger.info(
        "Form template %s %s", template_id, "published" if is_published else "unpublished"
    )
    return template
