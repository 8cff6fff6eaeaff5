from __future__ import annotations

from typing import Optional

from sqlalchemy import String, Text, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from muve.models.base import Base, ULIDMixin

PROCESSING = "processing"
COMPLETED = "completed"
ERROR = "error"
TERMINAL_STATUSES = frozenset({COMPLETED, ERROR})


class Evaluation(Base, ULIDMixin):
    __tablename__ = "evaluations"

    subject: Mapped[str] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    listing_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_needs: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=PROCESSING)  # processing | completed | error
    checklist: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_urls: Mapped[list | None] = mapped_column(JSON, nullable=True)
    image_results: Mapped[list | None] = mapped_column(JSON, nullable=True)
    specialty_results: Mapped[list | None] = mapped_column(JSON, nullable=True)
    final_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    final_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
