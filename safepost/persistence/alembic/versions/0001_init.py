"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "guidelines",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("subcategory", sa.String(), nullable=False, server_default=""),
        sa.Column("source_document", sa.String(), nullable=False),
        sa.Column("section_reference", sa.String(), nullable=False, server_default=""),
        sa.Column("rule_text", sa.Text(), nullable=False),
        sa.Column("plain_english_summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("recommended_action", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # Corpus reads are always ordered by category.
    op.create_index("ix_guidelines_category_id", "guidelines", ["category", "id"])

    op.create_table(
        "compliance_checks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        # Avoid index=True here because we create explicit indexes below.
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("content_text", sa.Text(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("platform", sa.String(), nullable=False),
        sa.Column("overall_status", sa.String(), nullable=False),
        sa.Column("compliance_score", sa.Integer(), nullable=False),
        sa.Column("result_json", postgresql.JSONB(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_compliance_checks_user_id", "compliance_checks", ["user_id"])
    # Newest-first history and monthly usage counts both scan by (user_id, created_at).
    op.create_index("ix_compliance_checks_user_created", "compliance_checks", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_compliance_checks_user_created", table_name="compliance_checks")
    op.drop_index("ix_compliance_checks_user_id", table_name="compliance_checks")
    op.drop_table("compliance_checks")
    op.drop_index("ix_guidelines_category_id", table_name="guidelines")
    op.drop_table("guidelines")
