from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movienight.db.base_class import Base


class CycleVote(Base):
    __tablename__ = "cycle_votes"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    cycle_id: Mapped[str] = mapped_column(sa.String(10), sa.ForeignKey("daily_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(sa.String(128), nullable=False)

    # 3 / 2 / 1 points; each optional
    top_pick: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    second_pick: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    third_pick: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    cycle = relationship("DailyCycle", back_populates="votes")

    __table_args__ = (
        sa.UniqueConstraint("cycle_id", "user_id", name="uq_cycle_votes_cycle_user"),
    )
