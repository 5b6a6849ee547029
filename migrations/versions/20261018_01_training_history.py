"""Training history, rosters and staff assignments."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=True,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column(
            "team_id",
            sa.String(length=36),
            sa.ForeignKey("teams.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=True,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_team_id", "users", ["team_id"], unique=False)

    op.create_table(
        "staff_team_links",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "staff_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_id",
            sa.String(length=36),
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_staff_team_links_staff_user_id", "staff_team_links", ["staff_user_id"], unique=False)
    op.create_index("ix_staff_team_links_team_id", "staff_team_links", ["team_id"], unique=False)
    op.create_index(
        "ix_staff_team_links_unique",
        "staff_team_links",
        ["staff_user_id", "team_id"],
        unique=True,
    )

    op.create_table(
        "training_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("rpe", sa.Float(), nullable=True),
        sa.Column("duration_min", sa.Float(), nullable=True),
        sa.Column("load", sa.Float(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=True,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=True,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_training_records_user_id", "training_records", ["user_id"], unique=False)
    op.create_index("ix_training_records_date", "training_records", ["date"], unique=False)
    op.create_index("ix_training_records_user_date", "training_records", ["user_id", "date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_training_records_user_date", table_name="training_records")
    op.drop_index("ix_training_records_date", table_name="training_records")
    op.drop_index("ix_training_records_user_id", table_name="training_records")
    op.drop_table("training_records")

    op.drop_index("ix_staff_team_links_unique", table_name="staff_team_links")
    op.drop_index("ix_staff_team_links_team_id", table_name="staff_team_links")
    op.drop_index("ix_staff_team_links_staff_user_id", table_name="staff_team_links")
    op.drop_table("staff_team_links")

    op.drop_index("ix_users_team_id", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")

    op.drop_table("teams")
