"""alert_log_immutability

Revision ID: 8d52f0e6a1c3
Revises: 3b7e21c9d0a4
Create Date: 2026-10-12 10:02:41.000000

Enforce append-only semantics on alert_records and email_logs at the DB level:
- Revoke UPDATE and DELETE from PUBLIC
- Grant SELECT and INSERT only

Both tables are the audit trail of which performance alerts went out.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '8d52f0e6a1c3'
down_revision: Union[str, None] = '3b7e21c9d0a4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("alert_records", "email_logs")


def upgrade() -> None:
    for table in TABLES:
        op.execute(f"REVOKE UPDATE, DELETE ON {table} FROM PUBLIC;")
        op.execute(f"GRANT SELECT, INSERT ON {table} TO PUBLIC;")


def downgrade() -> None:
    # Restore full DML access (only for disaster-recovery; normally never run)
    for table in TABLES:
        op.execute(f"GRANT UPDATE, DELETE ON {table} TO PUBLIC;")
