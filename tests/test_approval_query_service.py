from datetime import date, datetime, timedelta, timezone

from approval_api.db.enums import ApprovalStatus
from approval_api.db.models import ApprovalRequest
from approval_api.services.approval_query_service import ApprovalFilters, list_requests
from approval_api.utils.pagination import PaginationParams

BASE_TIME = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _add(db, applicant, index, *, dept=None, status=ApprovalStatus.DRAFT, project=None, created_at=None, completed_at=None):
    chain = {}
    if dept is not None:
        chain = {f"dept_level{level}_id": dept_id for level, dept_id in dept.items()}
    created = created_at or BASE_TIME + timedelta(minutes=index)
    request = ApprovalRequest(
        request_no=f"APP{1000 + index}",
        project_name=project or f"Project {index}",
        execute_date=date(2026, 11, 1),
        applicant_id=applicant.id,
        current_status=status.value,
        created_at=created,
        updated_at=created,
        submitted_at=None if status is ApprovalStatus.DRAFT else created,
        completed_at=completed_at,
        **chain,
    )
    db.add(request)
    return request


def _page(page=1, page_size=10) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


def test_pages_are_stable_and_total_is_constant(db, applicant):
    for index in range(25):
        _add(db, applicant, index)
    db.commit()

    first, total_first = list_requests(db, ApprovalFilters(), _page(1))
    second, total_second = list_requests(db, ApprovalFilters(), _page(2))
    third, total_third = list_requests(db, ApprovalFilters(), _page(3))

    assert total_first == total_second == total_third == 25
    # newest first: page 2 holds the 11th to 20th newest
    assert [r.request_no for r in second] == [f"APP{1000 + i}" for i in range(14, 4, -1)]
    assert len(third) == 5
    assert not {r.id for r in first} & {r.id for r in second}


def test_level1_filter_covers_subtree_only(db, applicant, departments):
    hq, eng, plat = departments.hq.id, departments.engineering.id, departments.platform.id
    _add(db, applicant, 1, dept={1: hq})
    _add(db, applicant, 2, dept={1: hq, 2: eng})
    _add(db, applicant, 3, dept={1: hq, 2: eng, 3: plat})
    _add(db, applicant, 4, dept={1: departments.branch.id, 2: departments.sales.id})
    _add(db, applicant, 5)
    db.commit()

    items, total = list_requests(db, ApprovalFilters(dept_id=hq), _page())
    assert total == 3
    assert {r.request_no for r in items} == {"APP1001", "APP1002", "APP1003"}

    items, total = list_requests(db, ApprovalFilters(dept_id=eng), _page())
    assert {r.request_no for r in items} == {"APP1002", "APP1003"}

    items, total = list_requests(db, ApprovalFilters(dept_id=plat), _page())
    assert [r.request_no for r in items] == ["APP1003"]


def test_unknown_department_filter_is_ignored(db, applicant, departments):
    _add(db, applicant, 1, dept={1: departments.hq.id})
    _add(db, applicant, 2)
    db.commit()

    _, total = list_requests(db, ApprovalFilters(dept_id=987654), _page())
    assert total == 2


def test_status_applicant_and_project_filters(db, applicant, other_applicant):
    _add(db, applicant, 1, project="Lab 100% upgrade", status=ApprovalStatus.PENDING)
    _add(db, applicant, 2, project="Lab move")
    _add(db, other_applicant, 3, project="Office move", status=ApprovalStatus.PENDING)
    db.commit()

    items, _ = list_requests(db, ApprovalFilters(status=ApprovalStatus.PENDING), _page())
    assert {r.request_no for r in items} == {"APP1001", "APP1003"}

    items, _ = list_requests(db, ApprovalFilters(applicant_id=other_applicant.id), _page())
    assert [r.request_no for r in items] == ["APP1003"]

    items, _ = list_requests(db, ApprovalFilters(project_name=" move "), _page())
    assert {r.request_no for r in items} == {"APP1002", "APP1003"}

    # LIKE wildcards in the search term match literally
    items, _ = list_requests(db, ApprovalFilters(project_name="100%"), _page())
    assert [r.request_no for r in items] == ["APP1001"]


def test_date_ranges_include_whole_days(db, applicant):
    _add(db, applicant, 1, created_at=datetime(2026, 9, 30, 23, 59, tzinfo=timezone.utc))
    _add(db, applicant, 2, created_at=datetime(2026, 10, 1, 0, 0, tzinfo=timezone.utc))
    _add(db, applicant, 3, created_at=datetime(2026, 10, 2, 23, 59, tzinfo=timezone.utc))
    _add(db, applicant, 4, created_at=datetime(2026, 10, 3, 0, 0, tzinfo=timezone.utc))
    _add(
        db,
        applicant,
        5,
        status=ApprovalStatus.APPROVED,
        created_at=datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
        completed_at=datetime(2026, 10, 5, 12, 0, tzinfo=timezone.utc),
    )
    db.commit()

    items, _ = list_requests(
        db,
        ApprovalFilters(created_from=date(2026, 10, 1), created_to=date(2026, 10, 2)),
        _page(),
    )
    assert {r.request_no for r in items} == {"APP1002", "APP1003", "APP1005"}

    items, _ = list_requests(
        db,
        ApprovalFilters(completed_from=date(2026, 10, 5), completed_to=date(2026, 10, 5)),
        _page(),
    )
    assert [r.request_no for r in items] == ["APP1005"]
