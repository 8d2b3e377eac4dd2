"""Initial migration — create catalog, patron, checkout and feedback tables.

Revision ID: 001
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Authors / books
    op.create_table(
        "authors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_authors_last_name", "authors", ["last_name"])

    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("isbn", sa.String(13), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("publisher", sa.String(255), nullable=True),
        sa.Column("publication_year", sa.Integer(), nullable=True),
        sa.Column("genre", sa.String(100), nullable=True),
        sa.Column("has_profanity", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_books_isbn", "books", ["isbn"], unique=True)
    op.create_index("ix_books_title", "books", ["title"])
    op.create_index("ix_books_genre", "books", ["genre"])

    op.create_table(
        "book_authors",
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("book_id", "author_id"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["authors.id"], ondelete="CASCADE"),
    )

    # Copies
    op.create_table(
        "copies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("format", sa.Enum("physical", "kindle", name="copyformat"), nullable=False),
        sa.Column("copy_number", sa.Integer(), nullable=True),
        sa.Column("barcode", sa.String(50), nullable=True),
        sa.Column("kindle_asin", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("barcode"),
    )
    op.create_index("ix_copies_book_id", "copies", ["book_id"])
    op.create_index("ix_copies_format", "copies", ["format"])

    # Patrons
    op.create_table(
        "patrons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("card_number", sa.String(50), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "suspended", name="patronstatus"),
            server_default="active",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patrons_card_number", "patrons", ["card_number"], unique=True)
    op.create_index("ix_patrons_email", "patrons", ["email"], unique=True)
    op.create_index("ix_patrons_status", "patrons", ["status"])

    # Checkouts
    op.create_table(
        "checkouts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("copy_id", sa.Integer(), nullable=False),
        sa.Column("patron_id", sa.Integer(), nullable=False),
        sa.Column("checkout_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("return_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["copy_id"], ["copies.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["patron_id"], ["patrons.id"], ondelete="RESTRICT"),
    )
    op.create_index("ix_checkouts_copy_id", "checkouts", ["copy_id"])
    op.create_index("ix_checkouts_patron_id", "checkouts", ["patron_id"])
    op.create_index("ix_checkouts_checkout_date", "checkouts", ["checkout_date"])
    op.create_index("ix_checkouts_due_date", "checkouts", ["due_date"])
    op.create_index("ix_checkouts_return_date", "checkouts", ["return_date"])
    # Double-booking guard: one unreturned checkout per copy
    op.create_index(
        "uq_checkouts_open_copy",
        "checkouts",
        ["copy_id"],
        unique=True,
        postgresql_where=sa.text("return_date IS NULL"),
    )

    # Feedback (ratings and reviews)
    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("patron_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patron_id"], ["patrons.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("book_id", "patron_id", name="uq_feedback_book_patron"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating_range"),
    )
    op.create_index("ix_feedback_book_id", "feedback", ["book_id"])
    op.create_index("ix_feedback_patron_id", "feedback", ["patron_id"])


def downgrade() -> None:
    op.drop_table("feedback")
    op.drop_table("checkouts")
    op.drop_table("patrons")
    op.drop_table("copies")
    op.drop_table("book_authors")
    op.drop_table("books")
    op.drop_table("authors")
    op.execute("DROP TYPE IF EXISTS patronstatus")
    op.execute("DROP TYPE IF EXISTS copyformat")
