"""Copy ORM model — physical and Kindle instances of a book."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_service.database import Base

if TYPE_CHECKING:
    from library_service.models.book import Book
    from library_service.models.checkout import Checkout


class CopyFormat(str, enum.Enum):
    PHYSICAL = "physical"
    KINDLE = "kindle"


class Copy(Base):
    __tablename__ = "copies"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    format: Mapped[CopyFormat] = mapped_column(
        Enum(CopyFormat, name="copyformat", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        index=True,
    )
    copy_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    kindle_asin: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    book: Mapped["Book"] = relationship(back_populates="copies")
    checkouts: Mapped[list["Checkout"]] = relationship(
        back_populates="copy", order_by="Checkout.checkout_date"
    )

    def __repr__(self) -> str:
        return f"<Copy id={self.id} book={self.book_id} format={self.format}>"
