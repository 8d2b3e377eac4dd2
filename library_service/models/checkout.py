"""Checkout ORM model — loan transactions linking a patron to a copy."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_service.database import Base

if TYPE_CHECKING:
    from library_service.models.copy import Copy
    from library_service.models.patron import Patron


class Checkout(Base):
    __tablename__ = "checkouts"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        # At most one unreturned checkout per copy
        Index(
            "uq_checkouts_open_copy",
            "copy_id",
            unique=True,
            postgresql_where=text("return_date IS NULL"),
            sqlite_where=text("return_date IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    copy_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("copies.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    patron_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patrons.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    checkout_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    return_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    copy: Mapped["Copy"] = relationship(back_populates="checkouts")
    patron: Mapped["Patron"] = relationship(back_populates="checkouts")

    @property
    def is_returned(self) -> bool:
        return self.return_date is not None

    def __repr__(self) -> str:
        return f"<Checkout id={self.id} copy={self.copy_id} patron={self.patron_id}>"
