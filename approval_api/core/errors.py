"""Error taxonomy for the approval workflow.

Every error a service raises on purpose derives from ``ApprovalServiceError``
and carries a short machine code, a human-readable message and, for
validation problems, the offending field. Routers never build error bodies
by hand; the handler registered in ``main`` renders ``to_dict()``.
"""

from __future__ import annotations

from typing import Any


class ApprovalServiceError(Exception):
    """Base class for structured, user-facing service errors."""

    status_code: int = 400
    default_code: str = "APPROVAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.field:
            body["field"] = self.field
        return body


class ValidationFailed(ApprovalServiceError):
    """Input breaks a business rule (length limits, inconsistent department chain)."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class ReferenceNotFound(ApprovalServiceError):
    """A request, department, user, attachment or submission id does not resolve."""

    status_code = 404
    default_code = "NOT_FOUND"


class InvalidStateTransition(ApprovalServiceError):
    """Operation attempted against a status that forbids it."""

    status_code = 409
    default_code = "INVALID_STATUS"

    def __init__(
        self,
        message: str,
        *,
        current_status: str,
        required_status: str,
        code: str | None = None,
    ):
        super().__init__(message, code=code, field="current_status")
        self.current_status = current_status
        self.required_status = required_status

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["current_status"] = self.current_status
        body["required_status"] = self.required_status
        return body


class ActionForbidden(ApprovalServiceError):
    """Actor is not allowed to perform the operation (not owner, not an approver)."""

    status_code = 403
    default_code = "FORBIDDEN"


class PersistenceConflict(ApprovalServiceError):
    """Unique or foreign-key violation reported by the database."""

    status_code = 409
    default_code = "PERSISTENCE_CONFLICT"


class UploadFailure(ApprovalServiceError):
    """One or more files of a saga run failed validation, credentialing or transfer."""

    status_code = 422
    default_code = "UPLOAD_FAILED"

    def __init__(self, failures: list[tuple[str, str]], *, message: str | None = None):
        self.failures = failures
        if message is None:
            listed = "; ".join(f"{name}: {reason}" for name, reason in failures)
            message = f"{len(failures)} file(s) failed to upload, all uploads were cancelled ({listed})"
        super().__init__(message, field="attachments")

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["details"] = [
            {"file_name": name, "reason": reason} for name, reason in self.failures
        ]
        return body


class CompensationFailure(Exception):
    """A rollback delete against object storage did not remove every key.

    Internal only: the saga logs it and keeps reporting the original failure.
    """

    def __init__(self, keys: list[str], reason: str):
        super().__init__(f"Failed to delete {len(keys)} object(s): {reason}")
        self.keys = keys
        self.reason = reason
