"""Migrate legacy summaries into summary_jobs

The legacy ``summaries`` table kept job status inside ``summary_content``
(``pending``, ``processing``, ``Error: <message>``, or the summary itself).
Rows are copied into ``summary_jobs`` with an explicit status.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from tubedigest.database.models import JobStatus, classify_legacy_content

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_TABLE = 'summaries'


def upgrade() -> None:
    bind = op.get_bind()
    if LEGACY_TABLE not in sa.inspect(bind).get_table_names():
        return

    legacy = sa.table(
        LEGACY_TABLE,
        sa.column('id', sa.String),
        sa.column('user_id', sa.String),
        sa.column('youtube_url', sa.String),
        sa.column('summary_content', sa.Text),
        sa.column('created_at', sa.DateTime(timezone=True)),
    )
    jobs = sa.table(
        'summary_jobs',
        sa.column('id', sa.String),
        sa.column('owner_id', sa.String),
        sa.column('source_reference', sa.String),
        sa.column('status', sa.String),
        sa.column('content', sa.Text),
        sa.column('error_message', sa.Text),
        sa.column('created_at', sa.DateTime(timezone=True)),
        sa.column('started_at', sa.DateTime(timezone=True)),
        sa.column('updated_at', sa.DateTime(timezone=True)),
    )

    rows = []
    for row in bind.execute(sa.select(legacy)).mappings():
        status, content, error_message = classify_legacy_content(row['summary_content'])
        rows.append({
            'id': row['id'],
            'owner_id': row['user_id'],
            'source_reference': row['youtube_url'],
            'status': status.value,
            'content': content,
            'error_message': error_message,
            'created_at': row['created_at'],
            # Processing rows get a start time so the supervisor can time them out
            'started_at': row['created_at'] if status == JobStatus.PROCESSING else None,
            'updated_at': row['created_at'],
        })

    if rows:
        op.bulk_insert(jobs, rows)


def downgrade() -> None:
    bind = op.get_bind()
    if LEGACY_TABLE not in sa.inspect(bind).get_table_names():
        return
    op.execute(
        "DELETE FROM summary_jobs WHERE id IN (SELECT id FROM summaries)"
    )
