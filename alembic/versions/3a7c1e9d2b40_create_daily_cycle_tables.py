"""create daily cycle, library and presence tables

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-18 09:12:44.502113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '3a7c1e9d2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_LIST = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "daily_cycles",
        sa.Column("id", sa.String(10), primary_key=True),
        sa.Column(
            "current_status",
            sa.String(32),
            server_default="WAITING_FOR_DECISIONS",
            nullable=False,
        ),
        sa.Column("winning_movie_id", sa.Uuid(), nullable=True),
        sa.Column("winning_score", sa.Integer(), nullable=True),
        sa.Column("revealed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dashboard_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finish_by_time", sa.String(5), server_default="03:30", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "current_status IN ('WAITING_FOR_DECISIONS','GATHERING_NOMINATIONS','GATHERING_VOTES','REVEAL','DASHBOARD_VIEW')",
            name="ck_daily_cycles_status",
        ),
    )

    for table, extra in (
        ("cycle_decisions", [sa.Column("will_watch", sa.Boolean(), nullable=False)]),
        ("cycle_nominations", [sa.Column("movie_ids", JSON_LIST, nullable=False)]),
        (
            "cycle_votes",
            [
                sa.Column("top_pick", sa.Uuid(), nullable=True),
                sa.Column("second_pick", sa.Uuid(), nullable=True),
                sa.Column("third_pick", sa.Uuid(), nullable=True),
            ],
        ),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column(
                "cycle_id",
                sa.String(10),
                sa.ForeignKey("daily_cycles.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.String(128), nullable=False),
            *extra,
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("cycle_id", "user_id", name=f"uq_{table}_cycle_user"),
        )
        op.create_index(f"ix_{table}_cycle_id", table, ["cycle_id"])

    op.create_table(
        "library_movies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_user_id", sa.String(128), nullable=False),
        sa.Column("catalog_id", sa.String(50), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("poster_url", sa.String(500), nullable=True),
        sa.Column("runtime_minutes", sa.Integer(), nullable=False),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("genres", JSON_LIST, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("nomination_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_nominated_cycle_id", sa.String(10), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("runtime_minutes > 0", name="ck_library_movies_runtime"),
        sa.CheckConstraint("nomination_streak >= 0", name="ck_library_movies_streak"),
        sa.UniqueConstraint("owner_user_id", "catalog_id", name="uq_library_movies_owner_catalog"),
    )
    op.create_index("ix_library_movies_owner_user_id", "library_movies", ["owner_user_id"])

    op.create_table(
        "shared_movies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("original_owner_user_id", sa.String(128), nullable=False),
        sa.Column("catalog_id", sa.String(50), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("poster_url", sa.String(500), nullable=True),
        sa.Column("runtime_minutes", sa.Integer(), nullable=False),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("genres", JSON_LIST, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("nomination_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("shared_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("runtime_minutes > 0", name="ck_shared_movies_runtime"),
    )
    op.create_index("ix_shared_movies_original_owner_user_id", "shared_movies", ["original_owner_user_id"])

    op.create_table(
        "active_users",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_active_users_last_seen_at", "active_users", ["last_seen_at"])


def downgrade():
    op.drop_index("ix_active_users_last_seen_at", table_name="active_users")
    op.drop_table("active_users")
    op.drop_index("ix_shared_movies_original_owner_user_id", table_name="shared_movies")
    op.drop_table("shared_movies")
    op.drop_index("ix_library_movies_owner_user_id", table_name="library_movies")
    op.drop_table("library_movies")
    for table in ("cycle_votes", "cycle_nominations", "cycle_decisions"):
        op.drop_index(f"ix_{table}_cycle_id", table_name=table)
        op.drop_table(table)
    op.drop_table("daily_cycles")
