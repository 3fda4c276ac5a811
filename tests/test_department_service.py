import pytest

from approval_api.core.errors import ReferenceNotFound, ValidationFailed
from approval_api.db.models import Department
from approval_api.services import department_service


def test_resolve_level2_department_returns_two_segments(db, departments):
    path = department_service.resolve_path(db, departments.engineering.id)

    assert path.level1_id == departments.hq.id
    assert path.level2_id == departments.engineering.id
    assert path.level3_id is None
    assert path.full_path == "Headquarters/Engineering"
    assert len(path.full_path.split("/")) == 2


def test_resolve_level3_department_fills_every_level(db, departments):
    path = department_service.resolve_path(db, departments.platform.id)

    assert (path.level1_id, path.level2_id, path.level3_id) == (
        departments.hq.id,
        departments.engineering.id,
        departments.platform.id,
    )
    assert path.full_path == "Headquarters/Engineering/Platform"
    assert path.level == 3


def test_resolve_root_leaves_deeper_levels_empty(db, departments):
    path = department_service.resolve_path(db, departments.branch.id)

    assert path.level1_id == departments.branch.id
    assert path.level2_id is None
    assert path.level3_id is None
    assert path.full_path == "Branch"


def test_resolve_missing_department_names_the_field(db, departments):
    with pytest.raises(ReferenceNotFound) as exc:
        department_service.resolve_path(db, 99999, field_name="dept_id")

    assert exc.value.field == "dept_id"
    assert exc.value.to_dict()["code"] == "NOT_FOUND"


def test_resolve_disabled_department_is_not_found(db, departments):
    with pytest.raises(ReferenceNotFound):
        department_service.resolve_path(db, departments.archive.id)


def test_resolve_rejects_inconsistent_levels(db, departments):
    broken = Department(
        dept_code="BAD", dept_name="Bad", level=3, parent_id=departments.hq.id
    )
    db.add(broken)
    db.commit()

    with pytest.raises(ValidationFailed):
        department_service.resolve_path(db, broken.id)


def test_level_ids_must_form_one_chain(db, departments):
    path = department_service.resolve_level_ids(
        db, departments.hq.id, departments.engineering.id, departments.platform.id
    )
    assert path.full_path == "Headquarters/Engineering/Platform"

    with pytest.raises(ValidationFailed) as exc:
        department_service.resolve_level_ids(
            db, departments.branch.id, departments.engineering.id, None
        )
    assert exc.value.field == "dept_level1_id"


def test_level_id_in_wrong_slot_is_rejected(db, departments):
    with pytest.raises(ValidationFailed) as exc:
        department_service.resolve_level_ids(db, None, departments.hq.id, None)

    assert exc.value.field == "dept_level2_id"


def test_level_ids_all_empty_resolve_to_none(db, departments):
    assert department_service.resolve_level_ids(db, None, None, None) is None


def test_filter_level_degrades_to_none(db, departments):
    assert department_service.filter_level(db, departments.engineering.id) == 2
    assert department_service.filter_level(db, 424242) is None
    assert department_service.filter_level(db, departments.archive.id) is None


def test_filter_tree_orders_and_nests_enabled_departments(db, departments):
    tree = department_service.build_filter_tree(db)

    assert [node["title"] for node in tree] == ["Headquarters", "Branch"]
    hq = tree[0]
    assert hq["key"] == str(departments.hq.id)
    # Finance has the lower sort order
    assert [child["title"] for child in hq["children"]] == ["Finance", "Engineering"]
    engineering = hq["children"][1]
    assert engineering["children"] == [
        {"title": "Platform", "key": str(departments.platform.id), "children": []}
    ]


def test_create_department_derives_level_and_caps_depth(db, departments):
    child = department_service.create_department(
        db, dept_code="OPS", dept_name="Ops", parent_id=departments.finance.id
    )
    assert child.level == 3

    with pytest.raises(ValidationFailed):
        department_service.create_department(
            db, dept_code="TOO-DEEP", dept_name="Too deep", parent_id=departments.platform.id
        )
