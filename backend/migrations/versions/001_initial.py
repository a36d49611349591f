"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

Creates the reporting tables:
- identity_mapping: Contact-address hash to UIN, plus login username
- public_directory: People selectable in the reporting form
- reports: Anonymized incident reports keyed by case token
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    # =========================
    # Identity Mapping
    # =========================
    if not table_exists("identity_mapping"):
        op.create_table(
            "identity_mapping",
            sa.Column("uin", sa.String(32), primary_key=True),
            sa.Column(
                "email_hash",
                sa.String(64),
                nullable=False,
                comment="SHA-256 of salted, lowercased contact address",
            ),
            sa.Column("username", sa.String(255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("email_hash", name="uq_identity_mapping_email_hash"),
        )
        # Plain @handle lookups compare lowercased usernames
        op.execute(
            "CREATE INDEX idx_identity_mapping_username_lower "
            "ON identity_mapping (lower(username))"
        )

    # =========================
    # Public Directory
    # =========================
    if not table_exists("public_directory"):
        op.create_table(
            "public_directory",
            sa.Column("uin", sa.String(32), primary_key=True),
            sa.Column("display_name", sa.String(255), nullable=False),
            sa.Column("username", sa.String(255), nullable=True),
            sa.Column("organization_id", sa.String(100), nullable=True),
        )
        op.create_index(
            "idx_public_directory_organization", "public_directory", ["organization_id"]
        )

    # =========================
    # Reports
    # =========================
    if not table_exists("reports"):
        op.create_table(
            "reports",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column("victim_uin", sa.String(32), nullable=False),
            sa.Column(
                "subject_uins",
                postgresql.ARRAY(sa.Text),
                nullable=False,
                server_default="{}",
            ),
            sa.Column("content", sa.Text, nullable=False, comment="Anonymized narrative"),
            sa.Column(
                "incident_type",
                sa.String(50),
                nullable=False,
                comment="physical, verbal, psychological",
            ),
            sa.Column(
                "interim_relief",
                postgresql.ARRAY(sa.Text),
                nullable=False,
                server_default="{}",
            ),
            sa.Column("organization_id", sa.String(100), nullable=False),
            sa.Column("case_token", sa.String(64), nullable=False),
            sa.Column(
                "status",
                sa.String(50),
                nullable=False,
                server_default="pending",
                comment="pending, under_review, escalated, closed",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("case_token", name="uq_reports_case_token"),
        )
        op.create_index("idx_reports_organization", "reports", ["organization_id"])
        op.create_index("idx_reports_status", "reports", ["status"])
        op.create_index("idx_reports_created_at", "reports", ["created_at"])


def downgrade() -> None:
    op.drop_table("reports")
    op.drop_table("public_directory")
    op.drop_table("identity_mapping")
