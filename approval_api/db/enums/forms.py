"""Form-related enums."""

from enum import Enum


class FormSubmissionStatus(str, Enum):
    """Status of a submitted form response."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
