from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movienight.db.base_class import Base

CYCLE_STATUSES = (
    "WAITING_FOR_DECISIONS",
    "GATHERING_NOMINATIONS",
    "GATHERING_VOTES",
    "REVEAL",
    "DASHBOARD_VIEW",
)


class DailyCycle(Base):
    __tablename__ = "daily_cycles"

    # ─────────────────────────────────────────────
    # Identity: YYYY-MM-DD, 4 AM day boundary
    # ─────────────────────────────────────────────
    id: Mapped[str] = mapped_column(sa.String(10), primary_key=True)

    # ─────────────────────────────────────────────
    # Phase (contended across workers; written with compare-and-set)
    # ─────────────────────────────────────────────
    current_status: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        server_default="WAITING_FOR_DECISIONS",
    )

    # ─────────────────────────────────────────────
    # Result, written atomically with REVEAL
    # ─────────────────────────────────────────────
    winning_movie_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    winning_score: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    revealed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    dashboard_due_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    finish_by_time: Mapped[str] = mapped_column(sa.String(5), nullable=False, server_default="03:30")

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )

    decisions = relationship(
        "CycleDecision",
        back_populates="cycle",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    nominations = relationship(
        "CycleNomination",
        back_populates="cycle",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    votes = relationship(
        "CycleVote",
        back_populates="cycle",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        sa.CheckConstraint(
            "current_status IN ('WAITING_FOR_DECISIONS','GATHERING_NOMINATIONS','GATHERING_VOTES','REVEAL','DASHBOARD_VIEW')",
            name="ck_daily_cycles_status",
        ),
    )
