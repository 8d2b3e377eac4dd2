"""
Seed script — populates the database with sample books, copies, patrons,
checkouts and ratings for demo.
Run: python -m library_service.seed
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select

from library_service.config import get_settings
from library_service.database import Base, async_session, engine
from library_service.logging_config import setup_logging
from library_service.models.book import Author, Book
from library_service.models.checkout import Checkout
from library_service.models.copy import Copy, CopyFormat
from library_service.models.feedback import Feedback
from library_service.models.patron import Patron, PatronStatus
from library_service.services.profanity import contains_profanity

logger = structlog.get_logger()

SAMPLE_BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": ("F. Scott", "Fitzgerald"),
        "genre": "Classic",
        "publisher": "Scribner",
        "isbn": "9780743273565",
        "publication_year": 1925,
    },
    {
        "title": "To Kill a Mockingbird",
        "author": ("Harper", "Lee"),
        "genre": "Classic",
        "publisher": "J. B. Lippincott",
        "isbn": "9780061120084",
        "publication_year": 1960,
    },
    {
        "title": "1984",
        "author": ("George", "Orwell"),
        "genre": "Dystopian",
        "publisher": "Secker & Warburg",
        "isbn": "9780451524935",
        "publication_year": 1949,
    },
    {
        "title": "Pride and Prejudice",
        "author": ("Jane", "Austen"),
        "genre": "Romance",
        "publisher": "T. Egerton",
        "isbn": "9780141439518",
        "publication_year": 1813,
    },
    {
        "title": "The Hobbit",
        "author": ("J.R.R.", "Tolkien"),
        "genre": "Fantasy",
        "publisher": "George Allen & Unwin",
        "isbn": "9780547928227",
        "publication_year": 1937,
    },
    {
        "title": "Dune",
        "author": ("Frank", "Herbert"),
        "genre": "Science Fiction",
        "publisher": "Chilton Books",
        "isbn": "9780441013593",
        "publication_year": 1965,
    },
    {
        "title": "Foundation",
        "author": ("Isaac", "Asimov"),
        "genre": "Science Fiction",
        "publisher": "Gnome Press",
        "isbn": "9780553293357",
        "publication_year": 1951,
    },
    {
        "title": "A Farewell to Arms",
        "author": ("Ernest", "Hemingway"),
        "genre": "Classic",
        "publisher": "Scribner",
        "isbn": "9780684801469",
        "publication_year": 1929,
    },
    {
        "title": "Go Tell It on the Mountain",
        "author": ("James", "Baldwin"),
        "genre": "Literary Fiction",
        "publisher": "Knopf",
        "isbn": "9780345806543",
        "publication_year": 1953,
    },
    {
        "title": "The Hell of It",
        "author": ("Sam", "Example"),
        "genre": "Humor",
        "publisher": "Demo Press",
        "isbn": "9780000000001",
        "publication_year": 2001,
    },
]

SAMPLE_PATRONS = [
    {"card_number": "LIB-0001", "first_name": "Alice", "last_name": "Nguyen", "email": "alice@example.com"},
    {"card_number": "LIB-0002", "first_name": "Bob", "last_name": "Okafor", "email": "bob@example.com"},
    {"card_number": "LIB-0003", "first_name": "Carol", "last_name": "Silva", "email": "carol@example.com"},
    {"card_number": "LIB-0004", "first_name": "Dave", "last_name": "Kim", "email": "dave@example.com"},
    {
        "card_number": "LIB-0005",
        "first_name": "Eve",
        "last_name": "Moreau",
        "email": "eve@example.com",
        "status": PatronStatus.SUSPENDED,
    },
]


async def seed():
    """Seed the database with sample data."""
    settings = get_settings()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        result = await session.execute(select(Patron).limit(1))
        if result.scalar_one_or_none():
            logger.info("seed_skipped", reason="database already seeded")
            return

        patrons = [Patron(**p) for p in SAMPLE_PATRONS]
        session.add_all(patrons)
        await session.flush()
        logger.info("seed_patrons_created", count=len(patrons))

        books = []
        copies = []
        for b in SAMPLE_BOOKS:
            data = dict(b)
            first_name, last_name = data.pop("author")
            book = Book(**data, has_profanity=contains_profanity(data["title"]))
            book.authors = [Author(first_name=first_name, last_name=last_name)]
            session.add(book)
            books.append(book)
        await session.flush()

        for book in books:
            for n in range(1, random.randint(1, 3) + 1):
                copies.append(
                    Copy(
                        book_id=book.id,
                        format=CopyFormat.PHYSICAL,
                        copy_number=n,
                        barcode=f"BC-{book.id:04d}-{n:02d}",
                    )
                )
            if random.random() < 0.5:
                copies.append(
                    Copy(book_id=book.id, format=CopyFormat.KINDLE, kindle_asin=f"B0{book.id:08d}")
                )
        session.add_all(copies)
        await session.flush()
        logger.info("seed_books_created", books=len(books), copies=len(copies))

        # A mix of open, returned and overdue loans
        now = datetime.now(timezone.utc)
        loan_period = timedelta(days=settings.loan_period_days)
        active_patrons = [p for p in patrons if p.is_active]
        checkouts = 0
        for copy in random.sample(copies, min(8, len(copies))):
            started = now - timedelta(days=random.randint(0, 30))
            returned = random.random() < 0.4
            session.add(
                Checkout(
                    copy_id=copy.id,
                    patron_id=random.choice(active_patrons).id,
                    checkout_date=started,
                    due_date=started + loan_period,
                    return_date=started + timedelta(days=random.randint(1, 14)) if returned else None,
                )
            )
            checkouts += 1
        await session.flush()
        logger.info("seed_checkouts_created", count=checkouts)

        ratings = 0
        for p in active_patrons:
            for book in random.sample(books, random.randint(2, len(books) // 2)):
                session.add(
                    Feedback(
                        book_id=book.id,
                        patron_id=p.id,
                        rating=random.randint(1, 5),
                        review_text=random.choice([None, "Loved it.", "Not for me.", "A solid read."]),
                    )
                )
                ratings += 1
        await session.flush()
        logger.info("seed_ratings_created", count=ratings)

        await session.commit()
        logger.info("seed_complete")


if __name__ == "__main__":
    _settings = get_settings()
    setup_logging(_settings.log_level, _settings.log_format)
    asyncio.run(seed())
