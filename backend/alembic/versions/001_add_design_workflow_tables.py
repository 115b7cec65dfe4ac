"""Add design workflow tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', sa.String(length=30), server_default='employee', nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # Create projects table
    op.create_table('projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_projects_id'), 'projects', ['id'], unique=False)

    # Create design_files table
    op.create_table('design_files',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_url', sa.String(length=1000), nullable=False),
        sa.Column('storage_path', sa.String(length=500), nullable=True),
        sa.Column('file_type', sa.String(length=10), server_default='other', nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('approval_status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('is_current_approved', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('admin_comments', sa.Text(), nullable=True),
        sa.Column('is_frozen', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('frozen_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('frozen_by', sa.Integer(), nullable=True),
        sa.Column('uploaded_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['frozen_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'category', 'version_number', name='unique_design_category_version'),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected', 'needs_changes')",
            name='valid_design_approval_status'
        ),
        sa.CheckConstraint("file_type IN ('image', 'pdf', 'other')", name='valid_design_file_type'),
        sa.CheckConstraint('version_number >= 1', name='positive_design_version')
    )
    op.create_index(op.f('ix_design_files_id'), 'design_files', ['id'], unique=False)
    op.create_index('idx_design_files_project_category', 'design_files', ['project_id', 'category'], unique=False)
    # At most one current approved version per category
    op.create_index(
        'uq_design_files_current_approved', 'design_files', ['project_id', 'category'],
        unique=True, postgresql_where=sa.text('is_current_approved')
    )

    # Create design_category_versions table (version high-water mark)
    op.create_table('design_category_versions',
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('last_version', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_id', 'category')
    )

    # Create design_comments table
    op.create_table('design_comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('design_file_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('x_percent', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('y_percent', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('page_number', sa.Integer(), nullable=True),
        sa.Column('zoom_level', sa.Numeric(precision=6, scale=2), nullable=True),
        sa.Column('mentioned_user_ids', sa.JSON(), nullable=True),
        sa.Column('linked_task_id', sa.Integer(), nullable=True),
        sa.Column('is_resolved', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['design_file_id'], ['design_files.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['resolved_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'x_percent IS NULL OR (x_percent >= 0 AND x_percent <= 100)',
            name='valid_comment_x_percent'
        ),
        sa.CheckConstraint(
            'y_percent IS NULL OR (y_percent >= 0 AND y_percent <= 100)',
            name='valid_comment_y_percent'
        )
    )
    op.create_index(op.f('ix_design_comments_id'), 'design_comments', ['id'], unique=False)
    op.create_index('idx_design_comments_file', 'design_comments', ['design_file_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_design_comments_file', table_name='design_comments')
    op.drop_index(op.f('ix_design_comments_id'), table_name='design_comments')
    op.drop_table('design_comments')

    op.drop_table('design_category_versions')

    op.drop_index('uq_design_files_current_approved', table_name='design_files')
    op.drop_index('idx_design_files_project_category', table_name='design_files')
    op.drop_index(op.f('ix_design_files_id'), table_name='design_files')
    op.drop_table('design_files')

    op.drop_index(op.f('ix_projects_id'), table_name='projects')
    op.drop_table('projects')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
