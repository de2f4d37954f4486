"""Initial notice board schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

LOCATIONS = ('amritsar', 'jalandhar', 'ludhiana', 'chandigarh', 'gurugram')
CATEGORIES = (
    'announcement', 'event', 'traffic_alert', 'looking_for', 'rental_to_let', 'reviews',
    'recommendations', 'news', 'citizen_reporter', 'community_services', 'health_capsule',
    'science_knowledge', 'article', 'jobs', 'help', 'sale', 'property', 'rental_required',
    'promotion', 'page_3',
)

# Types are created once up front; several tables share them
user_role_enum = postgresql.ENUM('user', 'admin', name='user_role_enum', create_type=False)
visibility_enum = postgresql.ENUM('public', 'private', name='visibility_enum', create_type=False)
location_enum = postgresql.ENUM(*LOCATIONS, name='location_enum', create_type=False)
post_category_enum = postgresql.ENUM(*CATEGORIES, name='post_category_enum', create_type=False)
ENUMS = (user_role_enum, visibility_enum, location_enum, post_category_enum)


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False))
    return columns


def _engagement_table(name):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['post_id'], ['post.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'post_id', name=f'uq_{name}_user_post'),
    )
    op.create_index(f'ix_{name}_id', name, ['id'])
    op.create_index(f'ix_{name}_post_id', name, ['post_id'])


def upgrade():
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('google_id', sa.String(length=255), nullable=True),
        sa.Column('apple_id', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('profile_image', sa.Text(), nullable=True),
        sa.Column('role', user_role_enum, nullable=False),
        sa.Column('visibility', visibility_enum, nullable=False),
        sa.Column('location', location_enum, nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('google_id'),
        sa.UniqueConstraint('apple_id'),
    )
    op.create_index('ix_user_id', 'user', ['id'])
    op.create_index('ix_user_uuid', 'user', ['uuid'], unique=True)
    op.create_index('ix_user_username', 'user', ['username'], unique=True)
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'user_preference',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('selected_categories', postgresql.JSONB(), nullable=False),
        sa.Column('notification_preferences', postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_user_preference_id', 'user_preference', ['id'])

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', post_category_enum, nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_category_id', 'category', ['id'])

    op.create_table(
        'subcategory',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['category.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('category_id', 'name', name='uq_subcategory_category_name'),
    )
    op.create_index('ix_subcategory_id', 'subcategory', ['id'])
    op.create_index('ix_subcategory_category_id', 'subcategory', ['category_id'])

    op.create_table(
        'post',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('subcategory_id', sa.Integer(), nullable=True),
        sa.Column('location', location_enum, nullable=False),
        sa.Column('location_details', sa.String(length=100), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('visibility', visibility_enum, nullable=False),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['category.id']),
        sa.ForeignKeyConstraint(['subcategory_id'], ['subcategory.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_post_id', 'post', ['id'])
    op.create_index('ix_post_uuid', 'post', ['uuid'], unique=True)
    op.create_index('ix_post_user_id', 'post', ['user_id'])
    op.create_index('idx_post_created_at', 'post', ['created_at'])
    op.create_index('idx_post_location_visibility', 'post', ['location', 'visibility'])

    op.create_table(
        'comment',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.String(length=500), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['post_id'], ['post.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_comment_id', 'comment', ['id'])
    op.create_index('ix_comment_post_id', 'comment', ['post_id'])

    _engagement_table('post_like')
    _engagement_table('saved_post')
    _engagement_table('followed_post')

    op.create_table(
        'oauth_state',
        sa.Column('state', sa.String(length=128), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('state'),
    )
    op.create_index('ix_oauth_state_expires_at', 'oauth_state', ['expires_at'])


def downgrade():
    op.drop_table('oauth_state')
    op.drop_table('followed_post')
    op.drop_table('saved_post')
    op.drop_table('post_like')
    op.drop_table('comment')
    op.drop_table('post')
    op.drop_table('subcategory')
    op.drop_table('category')
    op.drop_table('user_preference')
    op.drop_table('user')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
