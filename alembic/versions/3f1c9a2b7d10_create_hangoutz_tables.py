"""Create users, events, conversations and messages tables

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 10:30:12.418903

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the initial schema.

    Participant sets, unread counters and blocks live in their own tables so
    that joins, leaves and counter increments are single-row writes.
    """
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('photos', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('photo_url', sa.String(), nullable=True),
        sa.Column('interests', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_photo_url', sa.String(), nullable=True),
        sa.Column('trust_score', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('completed_profile', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_active', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('trust_score BETWEEN 0 AND 100', name='ck_users_trust_score'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)

    op.create_table(
        'user_blocks',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('blocker_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('blocked_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('blocker_id', 'blocked_id', name='uq_user_blocks_pair'),
    )
    op.create_index('ix_user_blocks_id', 'user_blocks', ['id'])
    op.create_index('ix_user_blocks_blocker_id', 'user_blocks', ['blocker_id'])
    op.create_index('ix_user_blocks_blocked_id', 'user_blocks', ['blocked_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('date_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=False),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('host_name', sa.String(), nullable=True),
        sa.Column('host_photo_url', sa.String(), nullable=True),
        sa.Column('max_participants', sa.Integer(), nullable=True),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(), nullable=False, server_default='upcoming'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_date_time', 'events', ['date_time'])
    op.create_index('ix_events_category', 'events', ['category'])
    op.create_index('ix_events_host_id', 'events', ['host_id'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_created_at', 'events', ['created_at'])
    # Coarse radius searches filter on the bounding box first
    op.create_index('ix_events_lat_lng', 'events', ['lat', 'lng'])

    op.create_table(
        'event_participants',
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_event_participants_user_id', 'event_participants', ['user_id'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('type', sa.String(), nullable=False, server_default='direct'),
        sa.Column('group_name', sa.String(), nullable=True),
        sa.Column('group_photo', sa.String(), nullable=True),
        sa.Column('last_message', sa.Text(), nullable=False, server_default=''),
        sa.Column('last_message_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('direct_key', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('direct_key', name='uq_conversations_direct_key'),
    )
    op.create_index('ix_conversations_id', 'conversations', ['id'])
    op.create_index('ix_conversations_last_message_at', 'conversations', ['last_message_at'])
    op.create_index('ix_conversations_updated_at', 'conversations', ['updated_at'])

    op.create_table(
        'conversation_participants',
        sa.Column(
            'conversation_id', sa.String(),
            sa.ForeignKey('conversations.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column('user_id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('photo_url', sa.String(), nullable=True),
        sa.Column('unread_count', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_conversation_participants_user_id', 'conversation_participants', ['user_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column(
            'conversation_id', sa.String(),
            sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('sender_id', sa.String(), nullable=False),
        sa.Column('sender_name', sa.String(), nullable=True),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, server_default='text'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_by', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('is_moderated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('moderation_flag', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('char_length(body) BETWEEN 1 AND 5000', name='ck_messages_body_length'),
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])


def downgrade() -> None:
    """Drop every table created by upgrade(), children first."""
    op.drop_table('messages')
    op.drop_table('conversation_participants')
    op.drop_table('conversations')
    op.drop_table('event_participants')
    op.drop_table('events')
    op.drop_table('user_blocks')
    op.drop_table('users')
