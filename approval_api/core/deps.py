"""FastAPI dependencies."""

from typing import Generator

from sqlalchemy.orm import Session

from approval_api.db.session import SessionLocal
from approval_api.services.attachment_storage import AttachmentStorage, get_attachment_storage


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_storage() -> AttachmentStorage:
    """Object storage used by the attachment upload saga."""
    return get_attachment_storage()
