"""create caretoshare tables

Revision ID: 3c1f0a9d7e21
Revises:
Create Date: 2026-10-19 09:12:40

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d7e21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


class_visibility = sa.Enum('public', 'private', name='class_visibility')
member_role = sa.Enum('member', 'cr', name='member_role')
file_visibility = sa.Enum('public', 'class', 'private', name='file_visibility')
file_category = sa.Enum(
    'documents', 'presentations', 'images', 'videos', 'archives', 'other',
    name='file_category',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('google_id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('avatar', sa.String(length=1024), nullable=True),
        sa.Column('google_access_token', sa.Text(), nullable=True),
        sa.Column('google_refresh_token', sa.Text(), nullable=True),
        sa.Column('refresh_token_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_google_id', 'users', ['google_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'classes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('thumbnail', sa.String(length=1024), nullable=False),
        sa.Column('class_code', sa.String(length=6), nullable=False),
        sa.Column('visibility', class_visibility, nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('creator_id', sa.Uuid(), nullable=False),
        sa.Column('file_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_classes_class_code', 'classes', ['class_code'], unique=True)
    op.create_index('ix_classes_creator_id', 'classes', ['creator_id'])
    op.create_index('ix_classes_visibility', 'classes', ['visibility'])

    op.create_table(
        'class_memberships',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('class_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', member_role, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'user_id', name='uq_class_memberships_class_user'),
    )
    op.create_index('ix_class_memberships_user_id', 'class_memberships', ['user_id'])

    op.create_table(
        'class_join_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('class_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'user_id', name='uq_class_join_requests_class_user'),
    )

    op.create_table(
        'files',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('category', file_category, nullable=False),
        sa.Column('visibility', file_visibility, nullable=False),
        sa.Column('class_id', sa.Uuid(), nullable=True),
        sa.Column('drive_id', sa.String(length=255), nullable=False),
        sa.Column('download_url', sa.String(length=2048), nullable=False),
        sa.Column('web_view_link', sa.String(length=2048), nullable=True),
        sa.Column('thumbnail_url', sa.String(length=2048), nullable=True),
        sa.Column('uploaded_by', sa.Uuid(), nullable=False),
        sa.Column('downloads', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('like_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comment_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_files_visibility_created_at', 'files', ['visibility', 'created_at'])
    op.create_index('ix_files_class_id', 'files', ['class_id'])
    op.create_index('ix_files_uploaded_by', 'files', ['uploaded_by'])

    op.create_table(
        'file_likes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['file_id'], ['files.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('file_id', 'user_id', name='uq_file_likes_file_user'),
    )

    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('text', sa.String(length=500), nullable=False),
        sa.Column('parent_comment_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['file_id'], ['files.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['parent_comment_id'], ['comments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_comments_file_id_created_at', 'comments', ['file_id', 'created_at'])
    op.create_index('ix_comments_user_id', 'comments', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_comments_user_id', table_name='comments')
    op.drop_index('ix_comments_file_id_created_at', table_name='comments')
    op.drop_table('comments')
    op.drop_table('file_likes')
    op.drop_index('ix_files_uploaded_by', table_name='files')
    op.drop_index('ix_files_class_id', table_name='files')
    op.drop_index('ix_files_visibility_created_at', table_name='files')
    op.drop_table('files')
    op.drop_table('class_join_requests')
    op.drop_index('ix_class_memberships_user_id', table_name='class_memberships')
    op.drop_table('class_memberships')
    op.drop_index('ix_classes_visibility', table_name='classes')
    op.drop_index('ix_classes_creator_id', table_name='classes')
    op.drop_index('ix_classes_class_code', table_name='classes')
    op.drop_table('classes')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_google_id', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (file_category, file_visibility, member_role, class_visibility):
        enum.drop(bind, checkfirst=True)
