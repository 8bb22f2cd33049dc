"""Create tree nodes table for the content/settings/analytics tree.

Revision ID: 002_tree_nodes
Revises: 001_admin_users
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "002_tree_nodes"
down_revision: Union[str, None] = "001_admin_users"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tree_nodes",
        sa.Column("path", sa.Text(), primary_key=True),
        sa.Column("value", JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index(
        "idx_tree_nodes_path_prefix", "tree_nodes", ["path"],
        postgresql_ops={"path": "text_pattern_ops"},
    )


def downgrade() -> None:
    op.drop_index("idx_tree_nodes_path_prefix", table_name="tree_nodes")
    op.drop_table("tree_nodes")
