"""Create users, videos, follow graph, blocks, comments and notifications

Revision ID: a1f3c9e20b17
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a1f3c9e20b17'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('require_follow_approval', sa.Boolean(), nullable=True),
        sa.Column('comment_permission', sa.String(length=20), nullable=False, server_default='everyone'),
        sa.Column('mention_permission', sa.String(length=20), nullable=False, server_default='everyone'),
        sa.Column('appear_in_discover', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('allow_suggestions', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('followers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('following_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('followers_count >= 0', name='ck_users_followers_count_non_negative'),
        sa.CheckConstraint('following_count >= 0', name='ck_users_following_count_non_negative')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table('videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('caption', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_videos_owner_id', 'videos', ['owner_id'])

    op.create_table('follows',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('follower_id', sa.Uuid(), nullable=False),
        sa.Column('following_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['follower_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['following_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('follower_id', 'following_id', name='uq_follows_follower_following')
    )
    op.create_index('ix_follows_follower_id', 'follows', ['follower_id'])
    op.create_index('ix_follows_following_id', 'follows', ['following_id'])

    op.create_table('follow_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('requester_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('requester_id', 'recipient_id', name='uq_follow_requests_requester_recipient')
    )
    op.create_index('ix_follow_requests_recipient_status', 'follow_requests', ['recipient_id', 'status'])

    op.create_table('blocks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('blocker_id', sa.Uuid(), nullable=False),
        sa.Column('blocked_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['blocker_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['blocked_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('blocker_id', 'blocked_id', name='uq_blocks_blocker_blocked')
    )
    op.create_index('ix_blocks_blocker_id', 'blocks', ['blocker_id'])
    op.create_index('ix_blocks_blocked_id', 'blocks', ['blocked_id'])

    op.create_table('comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('author_id', sa.Uuid(), nullable=False),
        sa.Column('parent_id', sa.Uuid(), nullable=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['comments.id']),
        sa.ForeignKeyConstraint(['deleted_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_comments_video_created', 'comments', ['video_id', 'created_at'])
    op.create_index('ix_comments_author_created', 'comments', ['author_id', 'created_at'])
    op.create_index('ix_comments_parent_id', 'comments', ['parent_id'])

    op.create_table('comment_likes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('comment_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_likes_comment_user')
    )
    op.create_index('ix_comment_likes_comment_id', 'comment_likes', ['comment_id'])

    op.create_table('notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('entity_type', sa.String(length=30), nullable=True),
        sa.Column('text', sa.String(length=100), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_recipient_created', 'notifications', ['recipient_id', 'created_at'])
    op.create_index('ix_notifications_recipient_read', 'notifications', ['recipient_id', 'read'])


def downgrade():
    op.drop_index('ix_notifications_recipient_read', table_name='notifications')
    op.drop_index('ix_notifications_recipient_created', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_comment_likes_comment_id', table_name='comment_likes')
    op.drop_table('comment_likes')

    op.drop_index('ix_comments_parent_id', table_name='comments')
    op.drop_index('ix_comments_author_created', table_name='comments')
    op.drop_index('ix_comments_video_created', table_name='comments')
    op.drop_table('comments')

    op.drop_index('ix_blocks_blocked_id', table_name='blocks')
    op.drop_index('ix_blocks_blocker_id', table_name='blocks')
    op.drop_table('blocks')

    op.drop_index('ix_follow_requests_recipient_status', table_name='follow_requests')
    op.drop_table('follow_requests')

    op.drop_index('ix_follows_following_id', table_name='follows')
    op.drop_index('ix_follows_follower_id', table_name='follows')
    op.drop_table('follows')

    op.drop_index('ix_videos_owner_id', table_name='videos')
    op.drop_table('videos')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
