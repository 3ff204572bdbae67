"""create_collaboration_tables

Revision ID: 3f1c2a9d7e01
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table('Accounts',
    sa.Column('id', sa.String(length=128), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('email_verified', sa.Boolean(), nullable=False),
    sa.Column('display_name', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Accounts_email'), 'Accounts', ['email'], unique=True)

    op.create_table('Users',
    sa.Column('id', sa.String(length=128), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('display_name', sa.String(length=100), nullable=True),
    sa.Column('email_verified', sa.Boolean(), nullable=False),
    sa.Column('pending_invite_count', sa.Integer(), nullable=False),
    sa.Column('accessible_books', sa.JSON(), nullable=False),
    sa.Column('accessible_albums', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Users_email'), 'Users', ['email'], unique=False)

    op.create_table('Books',
    sa.Column('id', sa.String(length=128), nullable=False),
    sa.Column('owner_id', sa.String(length=128), nullable=True),
    sa.Column('title', sa.String(length=255), nullable=True),
    sa.Column('cover_image_url', sa.String(length=1000), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Books_owner_id'), 'Books', ['owner_id'], unique=False)

    op.create_table('BookMembers',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('book_id', sa.String(length=128), nullable=False),
    sa.Column('user_id', sa.String(length=128), nullable=False),
    sa.Column('role', sa.String(length=20), nullable=False),
    sa.Column('can_manage_media', sa.Boolean(), nullable=False),
    sa.Column('can_invite_co_authors', sa.Boolean(), nullable=False),
    sa.Column('can_manage_pending_invites', sa.Boolean(), nullable=False),
    sa.Column('can_remove_co_authors', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['book_id'], ['Books.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('book_id', 'user_id', name='uq_book_members_book_user')
    )
    op.create_index(op.f('ix_BookMembers_book_id'), 'BookMembers', ['book_id'], unique=False)
    op.create_index(op.f('ix_BookMembers_user_id'), 'BookMembers', ['user_id'], unique=False)

    op.create_table('Albums',
    sa.Column('id', sa.String(length=128), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=True),
    sa.Column('cover_image', sa.String(length=1000), nullable=True),
    sa.Column('media_count', sa.Integer(), nullable=False),
    sa.Column('shared_with', sa.JSON(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('Invitations',
    sa.Column('id', sa.String(length=300), nullable=False),
    sa.Column('book_id', sa.String(length=128), nullable=False),
    sa.Column('owner_id', sa.String(length=128), nullable=False),
    sa.Column('invitee_uid', sa.String(length=128), nullable=False),
    sa.Column('invitee_email', sa.String(length=255), nullable=False),
    sa.Column('owner_name', sa.String(length=255), nullable=False),
    sa.Column('book_title', sa.String(length=255), nullable=False),
    sa.Column('can_manage_media', sa.Boolean(), nullable=False),
    sa.Column('can_invite_co_authors', sa.Boolean(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.Column('expires_at', sa.DateTime(), nullable=True),
    sa.Column('responded_at', sa.DateTime(), nullable=True),
    sa.Column('resent_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Invitations_book_id'), 'Invitations', ['book_id'], unique=False)
    op.create_index(op.f('ix_Invitations_invitee_uid'), 'Invitations', ['invitee_uid'], unique=False)
    op.create_index(op.f('ix_Invitations_status'), 'Invitations', ['status'], unique=False)
    op.create_index('ix_invitations_book_status_expires', 'Invitations', ['book_id', 'status', 'expires_at'], unique=False)
    op.create_index('ix_invitations_invitee_status_expires', 'Invitations', ['invitee_uid', 'status', 'expires_at'], unique=False)
    op.create_index('ix_invitations_book_status_created', 'Invitations', ['book_id', 'status', 'created_at'], unique=False)

    op.create_table('Notifications',
    sa.Column('id', sa.String(length=300), nullable=False),
    sa.Column('user_id', sa.String(length=128), nullable=False),
    sa.Column('type', sa.String(length=50), nullable=False),
    sa.Column('invite_id', sa.String(length=300), nullable=False),
    sa.Column('book_id', sa.String(length=128), nullable=False),
    sa.Column('book_title', sa.String(length=255), nullable=False),
    sa.Column('owner_id', sa.String(length=128), nullable=False),
    sa.Column('owner_name', sa.String(length=255), nullable=False),
    sa.Column('can_manage_media', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('expires_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Notifications_user_id'), 'Notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_Notifications_book_id'), 'Notifications', ['book_id'], unique=False)
    op.create_index('ix_notifications_user_created', 'Notifications', ['user_id', 'created_at'], unique=False)
    op.create_index('ix_notifications_user_type_created', 'Notifications', ['user_id', 'type', 'created_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_notifications_user_type_created', table_name='Notifications')
    op.drop_index('ix_notifications_user_created', table_name='Notifications')
    op.drop_index(op.f('ix_Notifications_book_id'), table_name='Notifications')
    op.drop_index(op.f('ix_Notifications_user_id'), table_name='Notifications')
    op.drop_table('Notifications')

    op.drop_index('ix_invitations_book_status_created', table_name='Invitations')
    op.drop_index('ix_invitations_invitee_status_expires', table_name='Invitations')
    op.drop_index('ix_invitations_book_status_expires', table_name='Invitations')
    op.drop_index(op.f('ix_Invitations_status'), table_name='Invitations')
    op.drop_index(op.f('ix_Invitations_invitee_uid'), table_name='Invitations')
    op.drop_index(op.f('ix_Invitations_book_id'), table_name='Invitations')
    op.drop_table('Invitations')

    op.drop_table('Albums')

    op.drop_index(op.f('ix_BookMembers_user_id'), table_name='BookMembers')
    op.drop_index(op.f('ix_BookMembers_book_id'), table_name='BookMembers')
    op.drop_table('BookMembers')

    op.drop_index(op.f('ix_Books_owner_id'), table_name='Books')
    op.drop_table('Books')

    op.drop_index(op.f('ix_Users_email'), table_name='Users')
    op.drop_table('Users')

    op.drop_index(op.f('ix_Accounts_email'), table_name='Accounts')
    op.drop_table('Accounts')
