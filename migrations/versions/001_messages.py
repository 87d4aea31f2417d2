"""Messages table (SQL-only).

Revision ID: 001_messages
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op

from wabridge.infra.repositories.messages_repository import schema_statements


# revision identifiers, used by Alembic.
revision = "001_messages"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    for statement in schema_statements(op.get_bind().dialect.name):
        op.execute(statement)


def downgrade() -> None:
    raise NotImplementedError("Downgrade not supported")
