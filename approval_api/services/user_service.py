"""User lookups shared by the approval and form services."""

from sqlalchemy.orm import Session

from approval_api.core.errors import ActionForbidden, ReferenceNotFound
from approval_api.db.enums import Role
from approval_api.db.models import User


def get_user(db: Session, user_id: int) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def require_user(
    db: Session,
    user_id: int,
    *,
    field: str,
    roles: set[str] | None = None,
) -> User:
    """
    Load an active user or raise.

    Raises:
        ReferenceNotFound: user is missing or inactive (names ``field``)
        ActionForbidden: ``roles`` is given and the user holds none of them
    """
    user = get_user(db, user_id)
    if user is None or not user.is_active:
        raise ReferenceNotFound(f"User {user_id} not found", field=field)
    if roles is not None and user.role not in roles:
        raise ActionForbidden(f"User {user_id} is not allowed to perform this action", field=field)
    return user


def create_user(db: Session, *, username: str, real_name: str, role: str = Role.APPLICANT.value) -> User:
    user = User(username=username, real_name=real_name, role=role)
    db.add(user)
    db.flush()
    return user
