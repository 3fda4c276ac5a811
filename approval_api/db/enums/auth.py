"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - APPLICANT: creates and edits own drafts, submits them
    - APPROVER: decides pending requests
    - ADMIN: everything an approver can do
    """

    APPLICANT = "applicant"
    APPROVER = "approver"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_

    @classmethod
    def deciders(cls) -> set[str]:
        return {cls.APPROVER.value, cls.ADMIN.value}
