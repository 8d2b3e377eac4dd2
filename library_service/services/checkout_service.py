"""
Checkout transaction service — creates and closes loans.

Patron existence is checked before copy existence. The write itself is a
conditional insert: the store's partial unique index on
``checkouts(copy_id) WHERE return_date IS NULL`` rejects a second open loan
for the same copy, and that rejection surfaces as ``Conflict``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from prometheus_client import Counter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from library_service.config import get_settings
from library_service.errors import Conflict, NotFound
from library_service.models.checkout import Checkout
from library_service.models.copy import Copy
from library_service.models.patron import Patron

logger = structlog.get_logger()

CHECKOUTS_CREATED = Counter("library_checkouts_created_total", "Checkouts created")
CHECKOUTS_REJECTED = Counter(
    "library_checkouts_rejected_total",
    "Checkouts rejected",
    ["reason"],
)


class CheckoutService:
    def __init__(self, session: AsyncSession, loan_period_days: int | None = None) -> None:
        self.session = session
        self.loan_period = timedelta(
            days=loan_period_days if loan_period_days is not None else get_settings().loan_period_days
        )

    async def create_checkout(self, copy_id: int, patron_id: int) -> Checkout:
        """Create an open checkout of ``copy_id`` for ``patron_id``.

        Raises NotFound for an unknown patron (checked first) or copy, and
        Conflict when the copy already has an unreturned checkout.
        """
        patron = await self.session.get(Patron, patron_id)
        if patron is None:
            CHECKOUTS_REJECTED.labels(reason="patron_not_found").inc()
            raise NotFound(f"Patron with ID {patron_id} not found")

        copy = await self.session.get(Copy, copy_id)
        if copy is None:
            CHECKOUTS_REJECTED.labels(reason="copy_not_found").inc()
            raise NotFound(f"Copy with ID {copy_id} not found")

        checkout_date = datetime.now(timezone.utc)
        checkout = Checkout(
            copy_id=copy_id,
            patron_id=patron_id,
            checkout_date=checkout_date,
            due_date=checkout_date + self.loan_period,
            return_date=None,
        )

        try:
            async with self.session.begin_nested():
                self.session.add(checkout)
        except IntegrityError:
            CHECKOUTS_REJECTED.labels(reason="already_checked_out").inc()
            logger.info("checkout_rejected_copy_unavailable", copy_id=copy_id, patron_id=patron_id)
            raise Conflict(f"Copy with ID {copy_id} is already checked out")

        CHECKOUTS_CREATED.inc()
        logger.info(
            "checkout_created",
            checkout_id=checkout.id,
            copy_id=copy_id,
            patron_id=patron_id,
            due_date=checkout.due_date.isoformat(),
        )

        # Re-read with associations for the response
        return await self.get_checkout(checkout.id)

    async def get_checkout(self, checkout_id: int) -> Checkout:
        result = await self.session.execute(
            select(Checkout)
            .where(Checkout.id == checkout_id)
            .options(
                selectinload(Checkout.patron),
                selectinload(Checkout.copy).selectinload(Copy.book),
            )
            .execution_options(populate_existing=True)
        )
        checkout = result.scalar_one_or_none()
        if checkout is None:
            raise NotFound(f"Checkout with ID {checkout_id} not found")
        return checkout

    async def return_checkout(self, checkout_id: int) -> Checkout:
        """Close an open checkout by stamping its return date."""
        checkout = await self.session.get(Checkout, checkout_id)
        if checkout is None:
            raise NotFound(f"Checkout with ID {checkout_id} not found")
        if checkout.is_returned:
            raise Conflict(f"Checkout with ID {checkout_id} has already been returned")

        checkout.return_date = datetime.now(timezone.utc)
        await self.session.flush()

        logger.info("checkout_returned", checkout_id=checkout_id, copy_id=checkout.copy_id)
        return await self.get_checkout(checkout_id)

    async def list_patron_checkouts(self, patron_id: int, active_only: bool = False) -> list[Checkout]:
        patron = await self.session.get(Patron, patron_id)
        if patron is None:
            raise NotFound(f"Patron with ID {patron_id} not found")

        query = (
            select(Checkout)
            .where(Checkout.patron_id == patron_id)
            .options(
                selectinload(Checkout.patron),
                selectinload(Checkout.copy).selectinload(Copy.book),
            )
            .order_by(Checkout.checkout_date.desc(), Checkout.id.desc())
        )
        if active_only:
            query = query.where(Checkout.return_date.is_(None))
        result = await self.session.execute(query)
        return list(result.scalars().all())
