"""create sidebar_specs table

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One admin.json document per project, stored as written (TEXT, not JSONB)
    # so key order and formatting survive a round trip
    op.execute("""
        CREATE TABLE sidebar_specs (
            project_id TEXT PRIMARY KEY,
            document TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    op.execute("""
        CREATE INDEX idx_sidebar_specs_updated ON sidebar_specs(updated_at);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS sidebar_specs CASCADE;")
