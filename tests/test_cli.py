import json

from click.testing import CliRunner

from approval_api.cli import cli
from approval_api.db.models import Department, User


def test_create_user_and_duplicate(db):
    runner = CliRunner()

    result = runner.invoke(cli, ["create-user", "--username", "dave", "--real-name", "Dave", "--role", "approver"])
    assert result.exit_code == 0
    assert "Created user dave" in result.output

    result = runner.invoke(cli, ["create-user", "--username", "dave", "--real-name", "Dave"])
    assert "already exists" in result.output
    assert db.query(User).filter(User.username == "dave").count() == 1


def test_create_department_under_parent_and_print_tree(db):
    runner = CliRunner()

    runner.invoke(cli, ["create-department", "--code", "HQ", "--name", "Headquarters"])
    root = db.query(Department).filter(Department.dept_code == "HQ").one()
    result = runner.invoke(
        cli, ["create-department", "--code", "ENG", "--name", "Engineering", "--parent-id", str(root.id)]
    )
    assert "level=2" in result.output

    result = runner.invoke(cli, ["department-tree"])
    tree = json.loads(result.output)
    assert tree[0]["title"] == "Headquarters"
    assert tree[0]["children"][0]["title"] == "Engineering"
