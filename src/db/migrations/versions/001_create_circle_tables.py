"""Create contacts, interaction_logs, circle_assignments and ai_circle_overrides.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "contacts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("linkedin", sa.String(), nullable=True),
        sa.Column("instagram", sa.String(), nullable=True),
        sa.Column("x_handle", sa.String(), nullable=True),
        sa.Column(
            "other_social_media",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("dunbar_circle", sa.String(), nullable=True),
        sa.Column("circle_confidence", sa.Float(), nullable=True),
        sa.Column("circle_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(op.f("ix_contacts_user_id"), "contacts", ["user_id"])
    op.create_index(op.f("ix_contacts_dunbar_circle"), "contacts", ["dunbar_circle"])

    op.create_table(
        "interaction_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("contact_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
    )
    op.create_index(
        "ix_interaction_logs_user_contact", "interaction_logs", ["user_id", "contact_id"]
    )
    op.create_index(op.f("ix_interaction_logs_occurred_at"), "interaction_logs", ["occurred_at"])

    op.create_table(
        "circle_assignments",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("assignment_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("contact_id", sa.String(), nullable=False),
        sa.Column("from_circle", sa.String(), nullable=True),
        sa.Column("to_circle", sa.String(), nullable=False),
        sa.Column("assigned_by", sa.String(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        op.f("ix_circle_assignments_assignment_id"),
        "circle_assignments",
        ["assignment_id"],
        unique=True,
    )
    op.create_index(
        "ix_circle_assignments_user_contact", "circle_assignments", ["user_id", "contact_id"]
    )
    op.create_index(
        op.f("ix_circle_assignments_assigned_at"), "circle_assignments", ["assigned_at"]
    )

    op.create_table(
        "ai_circle_overrides",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("contact_id", sa.String(), nullable=False),
        sa.Column("suggested_circle", sa.String(), nullable=False),
        sa.Column("actual_circle", sa.String(), nullable=False),
        sa.Column(
            "factors",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_ai_circle_overrides_user_id"), "ai_circle_overrides", ["user_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_ai_circle_overrides_user_id"), table_name="ai_circle_overrides")
    op.drop_table("ai_circle_overrides")
    op.drop_index(op.f("ix_circle_assignments_assigned_at"), table_name="circle_assignments")
    op.drop_index("ix_circle_assignments_user_contact", table_name="circle_assignments")
    op.drop_index(op.f("ix_circle_assignments_assignment_id"), table_name="circle_assignments")
    op.drop_table("circle_assignments")
    op.drop_index(op.f("ix_interaction_logs_occurred_at"), table_name="interaction_logs")
    op.drop_index("ix_interaction_logs_user_contact", table_name="interaction_logs")
    op.drop_table("interaction_logs")
    op.drop_index(op.f("ix_contacts_dunbar_circle"), table_name="contacts")
    op.drop_index(op.f("ix_contacts_user_id"), table_name="contacts")
    op.drop_table("contacts")
