from datetime import date, datetime

import pytest

from approval_api.core.config import settings
from approval_api.core.errors import (
    ActionForbidden,
    InvalidStateTransition,
    ReferenceNotFound,
    UploadFailure,
    ValidationFailed,
)
from approval_api.db.enums import ApprovalAction, ApprovalStatus, AttachmentType
from approval_api.db.models import ApprovalAttachment, ApprovalRequest
from approval_api.schemas.approvals import ApprovalRequestCreate, ApprovalRequestUpdate
from approval_api.schemas.attachments import AttachmentDescriptor
from approval_api.services import approval_service, attachment_service
from approval_api.services.attachment_upload_saga import PendingFile


def _naive(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value.replace(tzinfo=None)


def _image(name: str) -> PendingFile:
    return PendingFile(
        attachment_type=AttachmentType.IMAGE,
        file_name=name,
        content_type="image/png",
        payload=b"png-bytes",
    )


def _create(db, storage, applicant, *, files=None, **overrides) -> ApprovalRequest:
    data = ApprovalRequestCreate(
        project_name=overrides.pop("project_name", "New lab"),
        execute_date=overrides.pop("execute_date", date(2026, 11, 1)),
        applicant_id=applicant.id,
        **overrides,
    )
    return approval_service.create_request(db, data, storage=storage, files=files)


def test_create_starts_as_draft_with_department_chain(db, storage, applicant, departments):
    request = _create(db, storage, applicant, dept_id=departments.platform.id)

    assert request.current_status == ApprovalStatus.DRAFT.value
    assert request.request_no.startswith("APP")
    assert request.submitted_at is None
    assert request.completed_at is None
    assert request.dept_full_path == "Headquarters/Engineering/Platform"
    assert request.dept_level1_id == departments.hq.id
    assert request.dept_level3_id == departments.platform.id


def test_request_numbers_are_unique(db, storage, applicant):
    first = _create(db, storage, applicant)
    second = _create(db, storage, applicant)

    assert first.request_no != second.request_no


def test_create_with_attachments_persists_rows(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png"), _image("b.png")])

    assert [a.file_name for a in request.attachments] == ["a.png", "b.png"]
    assert all(a.uploader_id == applicant.id for a in request.attachments)
    assert storage.stored_names() == ["a.png", "b.png"]


def test_failed_upload_writes_nothing(db, storage, applicant):
    storage.fail_uploads.add("b.png")

    with pytest.raises(UploadFailure):
        _create(db, storage, applicant, files=[_image("a.png"), _image("b.png")])

    assert db.query(ApprovalRequest).count() == 0
    assert db.query(ApprovalAttachment).count() == 0
    assert storage.objects == {}


def test_create_rejects_long_content_and_unknown_department(db, storage, applicant, departments):
    with pytest.raises(ValidationFailed) as exc:
        _create(db, storage, applicant, approval_content="x" * (settings.APPROVAL_CONTENT_MAX_LENGTH + 1))
    assert exc.value.field == "approval_content"

    with pytest.raises(ReferenceNotFound) as exc:
        _create(db, storage, applicant, dept_id=departments.archive.id)
    assert exc.value.field == "dept_id"


def test_submit_and_approve_stamp_timestamps(db, storage, applicant, approver):
    request = _create(db, storage, applicant)

    submitted = approval_service.submit_request(db, request.id, actor_id=applicant.id)
    assert submitted.current_status == ApprovalStatus.PENDING.value
    assert submitted.submitted_at is not None
    assert submitted.completed_at is None
    assert _naive(submitted.submitted_at) >= _naive(submitted.created_at)

    decided = approval_service.decide_request(db, request.id, ApprovalAction.APPROVE, approver.id)
    assert decided.current_status == ApprovalStatus.APPROVED.value
    assert _naive(decided.completed_at) >= _naive(decided.submitted_at)


def test_reject_is_terminal(db, storage, applicant, approver):
    request = _create(db, storage, applicant)
    approval_service.submit_request(db, request.id)
    approval_service.decide_request(db, request.id, ApprovalAction.REJECT, approver.id)

    with pytest.raises(InvalidStateTransition) as exc:
        approval_service.decide_request(db, request.id, ApprovalAction.APPROVE, approver.id)

    assert exc.value.current_status == "rejected"
    assert exc.value.required_status == "pending"


def test_submit_twice_fails_and_leaves_timestamp(db, storage, applicant):
    request = _create(db, storage, applicant)
    submitted_at = approval_service.submit_request(db, request.id).submitted_at

    with pytest.raises(InvalidStateTransition):
        approval_service.submit_request(db, request.id)

    assert approval_service.require_request(db, request.id).submitted_at == submitted_at


def test_deciding_a_draft_fails(db, storage, applicant, approver):
    request = _create(db, storage, applicant)

    with pytest.raises(InvalidStateTransition) as exc:
        approval_service.decide_request(db, request.id, ApprovalAction.APPROVE, approver.id)

    assert exc.value.to_dict()["code"] == "INVALID_STATUS"
    assert approval_service.require_request(db, request.id).completed_at is None


def test_only_approvers_decide(db, storage, applicant, other_applicant):
    request = _create(db, storage, applicant)
    approval_service.submit_request(db, request.id)

    with pytest.raises(ActionForbidden):
        approval_service.decide_request(db, request.id, ApprovalAction.APPROVE, other_applicant.id)
    with pytest.raises(ReferenceNotFound) as exc:
        approval_service.decide_request(db, request.id, ApprovalAction.APPROVE, 9999)
    assert exc.value.field == "approver_id"


def test_submit_by_someone_else_is_forbidden(db, storage, applicant, other_applicant):
    request = _create(db, storage, applicant)

    with pytest.raises(ActionForbidden):
        approval_service.submit_request(db, request.id, actor_id=other_applicant.id)


def test_edit_replaces_fields_and_department(db, storage, applicant, departments):
    request = _create(db, storage, applicant, dept_id=departments.platform.id)

    edited = approval_service.edit_request(
        db,
        request.id,
        ApprovalRequestUpdate(
            actor_id=applicant.id,
            project_name="Renamed",
            dept_id=departments.finance.id,
        ),
        storage=storage,
    )

    assert edited.project_name == "Renamed"
    assert edited.dept_full_path == "Headquarters/Finance"
    assert edited.dept_level3_id is None
    assert edited.current_status == ApprovalStatus.DRAFT.value


def test_repeated_edit_does_not_duplicate_attachments(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png"), _image("b.png")])
    keep = [AttachmentDescriptor.model_validate(a) for a in request.attachments]
    update = ApprovalRequestUpdate(actor_id=applicant.id, attachments=keep)

    approval_service.edit_request(db, request.id, update, storage=storage)
    edited = approval_service.edit_request(db, request.id, update, storage=storage)

    assert sorted(a.file_name for a in edited.attachments) == ["a.png", "b.png"]
    assert db.query(ApprovalAttachment).count() == 2
    # carried-over files are not uploaded again
    assert len(storage.presigned) == 2


def test_edit_with_new_files_keeps_existing_set(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png")])

    edited = approval_service.edit_request(
        db,
        request.id,
        ApprovalRequestUpdate(actor_id=applicant.id),
        storage=storage,
        files=[_image("c.png")],
    )

    assert [a.file_name for a in edited.attachments] == ["a.png", "c.png"]


def test_edit_with_empty_list_drops_all_attachments(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png")])

    edited = approval_service.edit_request(
        db,
        request.id,
        ApprovalRequestUpdate(actor_id=applicant.id, attachments=[]),
        storage=storage,
    )

    assert edited.attachments == []


def test_failed_upload_during_edit_keeps_previous_state(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png")])
    storage.fail_uploads.add("bad.png")

    with pytest.raises(UploadFailure):
        approval_service.edit_request(
            db,
            request.id,
            ApprovalRequestUpdate(actor_id=applicant.id, project_name="Changed"),
            storage=storage,
            files=[_image("bad.png")],
        )

    db.expire_all()
    unchanged = approval_service.require_request(db, request.id)
    assert unchanged.project_name == "New lab"
    assert [a.file_name for a in unchanged.attachments] == ["a.png"]


def test_edit_outside_draft_fails(db, storage, applicant):
    request = _create(db, storage, applicant)
    approval_service.submit_request(db, request.id)

    with pytest.raises(InvalidStateTransition):
        approval_service.edit_request(
            db,
            request.id,
            ApprovalRequestUpdate(actor_id=applicant.id, project_name="Late change"),
            storage=storage,
        )


def test_edit_by_non_owner_is_forbidden(db, storage, applicant, other_applicant):
    request = _create(db, storage, applicant)

    with pytest.raises(ActionForbidden):
        approval_service.edit_request(
            db,
            request.id,
            ApprovalRequestUpdate(actor_id=other_applicant.id, project_name="Mine now"),
            storage=storage,
        )


def test_delete_removes_request_and_attachments(db, storage, applicant):
    request = _create(db, storage, applicant, files=[_image("a.png")])
    attachment_id = request.attachments[0].id

    deleted = approval_service.delete_request(db, request.id, actor_id=applicant.id)

    assert deleted.id == request.id
    assert len(deleted.attachments) == 1
    assert approval_service.get_request(db, request.id) is None
    with pytest.raises(ReferenceNotFound):
        attachment_service.require_attachment(db, attachment_id)


def test_delete_of_submitted_request_is_refused(db, storage, applicant):
    request = _create(db, storage, applicant)
    approval_service.submit_request(db, request.id)

    with pytest.raises(InvalidStateTransition):
        approval_service.delete_request(db, request.id)

    assert approval_service.get_request(db, request.id) is not None


def test_delete_of_submitted_request_allowed_when_configured(db, storage, applicant, monkeypatch):
    monkeypatch.setattr(settings, "APPROVAL_DELETE_REQUIRES_DRAFT", False)
    request = _create(db, storage, applicant)
    approval_service.submit_request(db, request.id)

    approval_service.delete_request(db, request.id)

    assert approval_service.get_request(db, request.id) is None


def test_unknown_request_is_not_found(db):
    with pytest.raises(ReferenceNotFound) as exc:
        approval_service.submit_request(db, 424242)

    assert exc.value.field == "request_id"
