from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from movienight.db.base_class import Base


class LibraryMovie(Base):
    __tablename__ = "library_movies"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    owner_user_id: Mapped[str] = mapped_column(sa.String(128), nullable=False, index=True)

    # TMDB movie id as a string
    catalog_id: Mapped[str] = mapped_column(sa.String(50), nullable=False)

    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)
    poster_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    runtime_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    release_year: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    genres: Mapped[list] = mapped_column(sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    nomination_streak: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0", default=0)
    # cycle the streak was last bumped for; keeps re-submissions from double counting
    last_nominated_cycle_id: Mapped[str | None] = mapped_column(sa.String(10), nullable=True)

    added_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.CheckConstraint("runtime_minutes > 0", name="ck_library_movies_runtime"),
        sa.CheckConstraint("nomination_streak >= 0", name="ck_library_movies_streak"),
        sa.UniqueConstraint("owner_user_id", "catalog_id", name="uq_library_movies_owner_catalog"),
    )
