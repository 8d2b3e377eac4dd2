"""Feedback ORM model — one rating (with optional review text) per patron per book."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_service.database import Base

if TYPE_CHECKING:
    from library_service.models.book import Book
    from library_service.models.patron import Patron

MIN_RATING = 1
MAX_RATING = 5
MAX_REVIEW_LENGTH = 2000


class Feedback(Base):
    __tablename__ = "feedback"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("book_id", "patron_id", name="uq_feedback_book_patron"),
        CheckConstraint(
            f"rating >= {MIN_RATING} AND rating <= {MAX_RATING}", name="ck_feedback_rating_range"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    patron_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patrons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    book: Mapped["Book"] = relationship()
    patron: Mapped["Patron"] = relationship(back_populates="feedback")

    def __repr__(self) -> str:
        return f"<Feedback book={self.book_id} patron={self.patron_id} rating={self.rating}>"
