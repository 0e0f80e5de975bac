"""Create summary job and user credit tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

summary_format = sa.Enum('paragraph', 'bullets', 'timestamped', name='summary_format')
summary_language = sa.Enum('en', 'es', 'fr', name='summary_language')
job_status = sa.Enum('pending', 'processing', 'completed', 'failed', name='job_status')
plan_type = sa.Enum('free', 'pro', 'enterprise', name='plan_type')


def upgrade() -> None:
    # Create summary_jobs table
    op.create_table(
        'summary_jobs',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('source_reference', sa.String(length=2000), nullable=False),
        sa.Column('summary_format', summary_format, nullable=False, server_default='paragraph'),
        sa.Column('language', summary_language, nullable=False, server_default='en'),
        sa.Column('status', job_status, nullable=False, server_default='pending'),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('video_title', sa.String(length=500), nullable=True),
        sa.Column('video_duration_seconds', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for summary_jobs table
    op.create_index('idx_summary_jobs_owner_created', 'summary_jobs', ['owner_id', 'created_at'], unique=False)
    op.create_index('idx_summary_jobs_status', 'summary_jobs', ['status'], unique=False)

    # Create user_credits table
    op.create_table(
        'user_credits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('plan', plan_type, nullable=False, server_default='free'),
        sa.Column('summaries_left', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('subscription_status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('billing_customer_id', sa.String(length=255), nullable=True),
        sa.Column('subscription_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_user_credits_user_id', 'user_credits', ['user_id'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_user_credits_user_id', table_name='user_credits')
    op.drop_table('user_credits')

    op.drop_index('idx_summary_jobs_status', table_name='summary_jobs')
    op.drop_index('idx_summary_jobs_owner_created', table_name='summary_jobs')
    op.drop_table('summary_jobs')

    bind = op.get_bind()
    for enum_type in (plan_type, job_status, summary_language, summary_format):
        enum_type.drop(bind, checkfirst=True)
