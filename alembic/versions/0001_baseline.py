"""Baseline migration - users, departments, forms and approval requests

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates every table of the approval workflow.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BIGINT_ID = sa.BigInteger().with_variant(sa.Integer(), 'sqlite')
JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    """Create approval workflow tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', BIGINT_ID, autoincrement=True, nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('real_name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(20), server_default=sa.text("'applicant'"), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('TRUE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )

    # ==========================================================================
    # Departments (fixed depth tree, parent pointers)
    # ==========================================================================
    op.create_table(
        'departments',
        sa.Column('id', BIGINT_ID, autoincrement=True, nullable=False),
        sa.Column('dept_code', sa.String(50), nullable=False),
        sa.Column('dept_name', sa.String(100), nullable=False),
        sa.Column('parent_id', BIGINT_ID, nullable=True),
        sa.Column('level', sa.SmallInteger(), nullable=False),
        sa.Column('sort_order', sa.SmallInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('status', sa.SmallInteger(), server_default=sa.text('1'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['departments.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('dept_code', name='uq_departments_code'),
    )
    op.create_index('idx_departments_parent', 'departments', ['parent_id'])
    op.create_index('idx_departments_level_sort', 'departments', ['level', 'sort_order'])

    # ==========================================================================
    # Form templates and submissions
    # ==========================================================================
    op.create_table(
        'form_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('schema_json', JSON_DOCUMENT, nullable=False),
        sa.Column('is_published', sa.Boolean(), server_default=sa.text('FALSE'), nullable=False),
        sa.Column('created_by_id', BIGINT_ID, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_form_templates_key'),
    )

    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=False),
        sa.Column('schema_snapshot', JSON_DOCUMENT, nullable=False),
        sa.Column('data', JSON_DOCUMENT, nullable=False),
        sa.Column('submitted_by', BIGINT_ID, nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['form_templates.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['submitted_by'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_form_submissions_template', 'form_submissions', ['template_id'])
    op.create_index('idx_form_submissions_submitter', 'form_submissions', ['submitted_by'])
    op.create_index('idx_form_submissions_status', 'form_submissions', ['status'])

    # ==========================================================================
    # Approval requests and attachments
    # ==========================================================================
    op.create_table(
        'approval_requests',
        sa.Column('id', BIGINT_ID, autoincrement=True, nullable=False),
        sa.Column('request_no', sa.String(40), nullable=False),
        sa.Column('project_name', sa.String(200), nullable=False),
        sa.Column('approval_content', sa.String(300), nullable=True),
        sa.Column('dept_full_path', sa.String(500), nullable=True),
        sa.Column('dept_level1_id', BIGINT_ID, nullable=True),
        sa.Column('dept_level2_id', BIGINT_ID, nullable=True),
        sa.Column('dept_level3_id', BIGINT_ID, nullable=True),
        sa.Column('execute_date', sa.Date(), nullable=False),
        sa.Column('applicant_id', BIGINT_ID, nullable=False),
        sa.Column('current_status', sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column('submission_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['dept_level1_id'], ['departments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['dept_level2_id'], ['departments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['dept_level3_id'], ['departments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['applicant_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['submission_id'], ['form_submissions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_no', name='uq_approval_requests_request_no'),
        sa.UniqueConstraint('submission_id', name='uq_approval_requests_submission'),
        sa.CheckConstraint(
            "(current_status IN ('approved', 'rejected')) = (completed_at IS NOT NULL)",
            name='ck_approval_requests_completed_at',
        ),
        sa.CheckConstraint(
            "(current_status = 'draft') = (submitted_at IS NULL)",
            name='ck_approval_requests_submitted_at',
        ),
    )
    op.create_index('idx_approval_requests_status', 'approval_requests', ['current_status'])
    op.create_index('idx_approval_requests_applicant', 'approval_requests', ['applicant_id'])
    op.create_index('idx_approval_requests_dept1', 'approval_requests', ['dept_level1_id'])
    op.create_index('idx_approval_requests_dept2', 'approval_requests', ['dept_level2_id'])
    op.create_index('idx_approval_requests_dept3', 'approval_requests', ['dept_level3_id'])
    op.create_index('idx_approval_requests_created', 'approval_requests', ['created_at'])

    op.create_table(
        'approval_attachments',
        sa.Column('id', BIGINT_ID, autoincrement=True, nullable=False),
        sa.Column('request_id', BIGINT_ID, nullable=False),
        sa.Column('attachment_type', sa.String(10), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_path', sa.String(1000), nullable=False),
        sa.Column('file_size', BIGINT_ID, server_default=sa.text('0'), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('uploader_id', BIGINT_ID, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['approval_requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploader_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_approval_attachments_request', 'approval_attachments', ['request_id'])


def downgrade() -> None:
    op.drop_table('approval_attachments')
    op.drop_table('approval_requests')
    op.drop_table('form_submissions')
    op.drop_table('form_templates')
    op.drop_table('departments')
    op.drop_table('users')
