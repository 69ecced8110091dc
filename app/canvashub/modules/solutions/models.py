from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.canvashub.models import Base


class Solution(Base):
    __tablename__ = "solutions"
    __table_args__ = (
        Index("idx_solutions_author_name", "author_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled")

    # Copy of User.username, not a foreign key
    author_name: Mapped[str] = mapped_column(String(150), nullable=False)

    # Canvas document, stored after the configured JSON transform
    json: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
