"""CLI tools for approval service administration."""

import json

import click

from approval_api.core.errors import ApprovalServiceError
from approval_api.db.enums import Role
from approval_api.db.session import SessionLocal
from approval_api.db.unit_of_work import unit_of_work
from approval_api.services import department_service, user_service


@click.group()
def cli():
    """Approval service CLI tools."""
    pass


@cli.command()
@click.option("--username", required=True, help="Login name (unique)")
@click.option("--real-name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.APPLICANT.value,
    show_default=True,
)
def create_user(username: str, real_name: str, role: str):
    """
    Create a user.

    Example:
        python -m approval_api.cli create-user --username alice --real-name "Alice" --role approver
    """
    db = SessionLocal()
    try:
        if user_service.get_user_by_username(db, username):
            click.echo(f"❌ User '{username}' already exists")
            return
        with unit_of_work(db):
            user = user_service.create_user(db, username=username, real_name=real_name, role=role)
        click.echo(f"✓ Created user {username} (id={user.id}, role={role})")
    except ApprovalServiceError as e:
        click.echo(f"❌ Error: {e.message}")
    finally:
        db.close()


@cli.command()
@click.option("--code", required=True, help="Department code (unique)")
@click.option("--name", required=True, help="Department name")
@click.option("--parent-id", type=int, default=None, help="Parent department id (omit for a root)")
@click.option("--sort-order", type=int, default=0, show_default=True)
def create_department(code: str, name: str, parent_id: int | None, sort_order: int):
    """Create a department; its level follows the parent."""
    db = SessionLocal()
    try:
        with unit_of_work(db):
            dept = department_service.create_department(
                db,
                dept_code=code,
                dept_name=name,
                parent_id=parent_id,
                sort_order=sort_order,
            )
        click.echo(f"✓ Created department {name} (id={dept.id}, level={dept.level})")
    except ApprovalServiceError as e:
        click.echo(f"❌ Error: {e.message}")
    finally:
        db.close()


@cli.command()
def department_tree():
    """Print the enabled department tree as JSON."""
    db = SessionLocal()
    try:
        click.echo(json.dumps(department_service.build_filter_tree(db), ensure_ascii=False, indent=2))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
