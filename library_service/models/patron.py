"""Patron ORM model — library cardholders."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_service.database import Base

if TYPE_CHECKING:
    from library_service.models.checkout import Checkout
    from library_service.models.feedback import Feedback


class PatronStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Patron(Base):
    __tablename__ = "patrons"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    card_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status: Mapped[PatronStatus] = mapped_column(
        Enum(PatronStatus, name="patronstatus", values_callable=lambda e: [x.value for x in e]),
        default=PatronStatus.ACTIVE,
        server_default="active",
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    checkouts: Mapped[list["Checkout"]] = relationship(back_populates="patron")
    feedback: Mapped[list["Feedback"]] = relationship(back_populates="patron")

    @property
    def is_active(self) -> bool:
        return self.status == PatronStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Patron id={self.id} card={self.card_number} status={self.status}>"
