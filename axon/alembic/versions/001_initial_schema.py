"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2025-12-01 18:43:56.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade():
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email')
    )

    # Create training_modules table
    op.create_table(
        'training_modules',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('configuration', JSON_TYPE, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_training_modules'),
        sa.UniqueConstraint('slug', name='uq_training_modules_slug')
    )

    # Create training_sessions table
    op.create_table(
        'training_sessions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('module_id', sa.String(36), nullable=False),
        sa.Column('configuration', JSON_TYPE, nullable=False),
        sa.Column('results', JSON_TYPE, nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('performance_level', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_training_sessions'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_training_sessions_user_id_users'),
        sa.ForeignKeyConstraint(['module_id'], ['training_modules.id'], ondelete='RESTRICT',
                                name='fk_training_sessions_module_id_training_modules')
    )
    op.create_index('idx_training_sessions_user_created', 'training_sessions', ['user_id', 'created_at'])

    # Create user_progress table
    op.create_table(
        'user_progress',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('module_id', sa.String(36), nullable=False),
        sa.Column('total_sessions', sa.Integer(), nullable=False),
        sa.Column('average_score', sa.Float(), nullable=False),
        sa.Column('best_score', sa.Float(), nullable=False),
        sa.Column('current_streak', sa.Integer(), nullable=False),
        sa.Column('longest_streak', sa.Integer(), nullable=False),
        sa.Column('current_difficulty', sa.String(20), nullable=True),
        sa.Column('last_session_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_user_progress'),
        sa.UniqueConstraint('user_id', 'module_id', name='uq_user_progress_user_module'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_user_progress_user_id_users'),
        sa.ForeignKeyConstraint(['module_id'], ['training_modules.id'], ondelete='RESTRICT',
                                name='fk_user_progress_module_id_training_modules')
    )

    # Create content_usage table
    op.create_table(
        'content_usage',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(50), nullable=False),
        sa.Column('items', JSON_TYPE, nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_content_usage'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_content_usage_user_id_users')
    )
    op.create_index('idx_content_usage_user_type_used', 'content_usage',
                    ['user_id', 'content_type', 'used_at'])


def downgrade():
    op.drop_index('idx_content_usage_user_type_used', table_name='content_usage')
    op.drop_table('content_usage')
    op.drop_table('user_progress')
    op.drop_index('idx_training_sessions_user_created', table_name='training_sessions')
    op.drop_table('training_sessions')
    op.drop_table('training_modules')
    op.drop_table('users')
