"""Transaction boundary shared by every multi-row mutation."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approval_api.core.errors import PersistenceConflict

logger = logging.getLogger(__name__)

_FIELD_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: [\w]+\.(\w+)"),
    re.compile(r"Key \((\w+)(?:, \w+)*\)="),
    re.compile(r'constraint "(\w+)"'),
)


def _offending_field(exc: IntegrityError) -> str | None:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for pattern in _FIELD_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def translate_integrity_error(exc: IntegrityError) -> PersistenceConflict:
    """Map a raw database integrity error onto a user-facing conflict."""
    field = _offending_field(exc)
    message = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = message.lower()
    if "foreign key" in lowered:
        return PersistenceConflict(
            "Referenced record does not exist",
            code="FOREIGN_KEY_CONSTRAINT",
            field=field,
        )
    if "unique" in lowered or "duplicate" in lowered:
        return PersistenceConflict(
            "Record already exists",
            code="UNIQUE_CONSTRAINT",
            field=field,
        )
    return PersistenceConflict("Record violates a database constraint", field=field)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit everything done in the block as one transaction.

    Any exception rolls the whole block back; integrity errors leave as
    PersistenceConflict so callers never see driver error text.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Transaction rolled back on integrity error: %s", exc.orig)
        raise translate_integrity_error(exc) from exc
    except Exception:
        db.rollback()
        raise
