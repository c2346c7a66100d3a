"""
catalog/store.py -- SQLAlchemy Core persistence layer for books.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. BookStore is the repository; _row_to_book
is the mapper. Route handlers never touch SQL directly.

Stock invariant: amount >= 0 is checked by the service before every write and
backed by a CHECK constraint. decrement_stock() is a single conditional UPDATE
(`... WHERE amount > 0`), so two concurrent buyers cannot both take the last
copy.

Usage:
    store = BookStore(db)
    book_id = store.create_book(Book(title="Dune", description="...", amount=3, owner_id=uid))
    books = store.list_books()
    with db.transaction() as conn:
        store.decrement_stock(book_id, conn)
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Integer, String, Table, Text, select
from sqlalchemy.engine import Connection

from auth.store import users_table
from catalog.models import Book, Owner
from core.database import Database, metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

books_table = Table(
    "books",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("amount", Integer, nullable=False),
    # Plain reference, no FK: deleting a user leaves their books in place.
    Column("owner_id", String(32), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint("amount >= 0", name="ck_books_amount_non_negative"),
)

_MUTABLE_FIELDS = {"title", "description", "amount"}


def _select_with_owner():
    """SELECT books LEFT JOIN users, exposing the owner's public fields."""
    return select(
        books_table,
        users_table.c.name.label("owner_name"),
        users_table.c.email.label("owner_email"),
        users_table.c.id.label("owner_user_id"),
    ).select_from(books_table.outerjoin(users_table, books_table.c.owner_id == users_table.c.id))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BookStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    def create_book(self, book: Book) -> str:
        """Insert a new book and return its generated id."""
        book_id = uuid.uuid4().hex
        stamp = now_iso()
        with self.db.transaction() as conn:
            conn.execute(
                books_table.insert().values(
                    id=book_id,
                    title=book.title,
                    description=book.description,
                    amount=book.amount,
                    owner_id=book.owner_id,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return book_id

    def get_book(self, book_id: str, with_owner: bool = False, conn: Connection | None = None) -> Optional[Book]:
        """Return the book or None. with_owner=True resolves the owner projection."""
        query = _select_with_owner() if with_owner else books_table.select()
        with self.db.transaction(conn) as c:
            row = c.execute(query.where(books_table.c.id == book_id)).fetchone()
        if row is None:
            return None
        return _row_to_book(row, with_owner=with_owner)

    def list_books(self) -> list[Book]:
        """Return every book, oldest first, with owners resolved."""
        with self.db.engine.connect() as conn:
            rows = conn.execute(_select_with_owner().order_by(books_table.c.created_at)).fetchall()
        return [_row_to_book(r, with_owner=True) for r in rows]

    def update_book(self, book_id: str, **fields) -> bool:
        """Overwrite the supplied fields (title, description, amount).

        Returns True if a row was updated, False if book_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown book fields: {unknown!r}")
        with self.db.transaction() as conn:
            result = conn.execute(
                books_table.update().where(books_table.c.id == book_id).values(updated_at=now_iso(), **fields)
            )
        return result.rowcount > 0

    def decrement_stock(self, book_id: str, conn: Connection | None = None) -> Optional[int]:
        """Take one copy out of stock. Returns the new amount.

        Returns None when no row matched -- the book is gone or already at 0.
        """
        with self.db.transaction(conn) as c:
            result = c.execute(
                books_table.update()
                .where((books_table.c.id == book_id) & (books_table.c.amount > 0))
                .values(amount=books_table.c.amount - 1, updated_at=now_iso())
            )
            if result.rowcount == 0:
                return None
            return c.execute(select(books_table.c.amount).where(books_table.c.id == book_id)).scalar()

    def delete_book(self, book_id: str) -> bool:
        with self.db.transaction() as conn:
            result = conn.execute(books_table.delete().where(books_table.c.id == book_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_book(row, with_owner: bool = False) -> Book:
    owner = None
    if with_owner and row.owner_user_id is not None:
        owner = Owner(id=row.owner_user_id, name=row.owner_name, email=row.owner_email)
    return Book(
        id=row.id,
        title=row.title,
        description=row.description,
        amount=row.amount,
        owner_id=row.owner_id,
        owner=owner,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
