"""create escape_progress table

Revision ID: 2025_12_20_01
Revises: 
Create Date: 2025-12-20
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "2025_12_20_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "escape_progress",
        sa.Column("storage_key", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("blob", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("escape_progress")
