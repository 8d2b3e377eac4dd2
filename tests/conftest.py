"""Shared test configuration and fixtures."""

from __future__ import annotations

import itertools
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure the project root is on sys.path so `library_service` resolves
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read once at import time, so the test environment goes first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from library_service.database import Base  # noqa: E402
from library_service.models.book import Author, Book  # noqa: E402
from library_service.models.checkout import Checkout  # noqa: E402
from library_service.models.copy import Copy, CopyFormat  # noqa: E402
from library_service.models.feedback import Feedback  # noqa: E402
from library_service.models.patron import Patron, PatronStatus  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's implicit transactions break SAVEPOINT; take over BEGIN
    @event.listens_for(test_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


class Factory:
    """Creates rows directly through a session and flushes them."""

    # Shared across instances so seeds from separate sessions stay unique
    _seq = itertools.count(1)

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _next(self) -> int:
        return next(self._seq)

    async def patron(self, status: PatronStatus = PatronStatus.ACTIVE, **kwargs) -> Patron:
        n = self._next()
        patron = Patron(
            card_number=kwargs.pop("card_number", f"CARD-{n:04d}"),
            first_name=kwargs.pop("first_name", "Pat"),
            last_name=kwargs.pop("last_name", f"Ron{n}"),
            status=status,
            **kwargs,
        )
        self.session.add(patron)
        await self.session.flush()
        return patron

    async def book(self, title: str | None = None, **kwargs) -> Book:
        n = self._next()
        book = Book(title=title or f"Book {n}", has_profanity=False, **kwargs)
        self.session.add(book)
        await self.session.flush()
        return book

    async def author(self, last_name: str = "Author", first_name: str | None = None) -> Author:
        author = Author(first_name=first_name, last_name=last_name)
        self.session.add(author)
        await self.session.flush()
        return author

    async def copy(self, book: Book, fmt: CopyFormat = CopyFormat.PHYSICAL) -> Copy:
        n = self._next()
        copy = Copy(book_id=book.id, format=fmt, copy_number=n, barcode=f"BC-{n:05d}")
        self.session.add(copy)
        await self.session.flush()
        return copy

    async def checkout(self, copy: Copy, patron: Patron, returned: bool = False) -> Checkout:
        now = datetime.now(timezone.utc)
        checkout = Checkout(
            copy_id=copy.id,
            patron_id=patron.id,
            checkout_date=now,
            due_date=now + timedelta(days=14),
            return_date=now if returned else None,
        )
        self.session.add(checkout)
        await self.session.flush()
        return checkout

    async def feedback(self, book: Book, patron: Patron, rating: int, review_text: str | None = None) -> Feedback:
        feedback = Feedback(book_id=book.id, patron_id=patron.id, rating=rating, review_text=review_text)
        self.session.add(feedback)
        await self.session.flush()
        return feedback


@pytest_asyncio.fixture
async def factory(session):
    return Factory(session)
