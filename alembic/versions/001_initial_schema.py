"""initial schema - customers, quotes, jobs, appointments, VIN cache, activity

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

For NEW databases: run `alembic upgrade head` (creates all tables from models).
For databases created by the app's startup sync: run `alembic stamp 001_initial`.
"""
from typing import Sequence, Union

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from SQLAlchemy models.

    metadata.create_all with checkfirst=True is safe to run when some
    tables already exist.
    """
    from alembic import op

    from wheelsglass.models import Base

    Base.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Drop all tables. DESTRUCTIVE: dev/test environments only."""
    from alembic import op

    from wheelsglass.models import Base

    Base.metadata.drop_all(bind=op.get_bind())
