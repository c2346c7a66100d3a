"""
catalog/service.py -- Book inventory operations and the purchase transaction.

Every function validates and authorizes before its first write and raises
the most specific core.errors type. Route handlers stay thin: they unpack the
request body, call one function here, and wrap the result in the envelope.

purchase_book() runs the stock decrement and the buyer's purchase_count
increment in ONE database transaction. The decrement is conditional
(amount > 0), so a concurrent buyer who takes the last copy first turns this
purchase into OutOfStock instead of driving stock negative, and a failure on
the second write rolls back the first.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.guards import enforce, owner_or_admin
from auth.models import User
from auth.store import UserStore
from catalog.models import Book, Purchase
from catalog.store import BookStore
from core.database import Database
from core.errors import InvalidOperation, NotFound, OutOfStock, Unauthenticated, ValidationError

logger = logging.getLogger("bookstore.catalog")

_MISSING_FIELDS = "Please provide title, description, and amount"
_NEGATIVE_AMOUNT = "Amount cannot be negative"
_BOOK_NOT_FOUND = "Book not found"


def _require_book(books: BookStore, book_id: str) -> Book:
    book = books.get_book(book_id)
    if book is None:
        raise NotFound(_BOOK_NOT_FOUND)
    return book


# ---------------------------------------------------------------------------
# Inventory operations
# ---------------------------------------------------------------------------


def create_book(
    books: BookStore,
    actor: User,
    title: Optional[str],
    description: Optional[str],
    amount: Optional[int],
) -> Book:
    """Create a book owned by actor."""
    if not title or not description or amount is None:
        raise ValidationError(_MISSING_FIELDS)
    if amount < 0:
        raise ValidationError(_NEGATIVE_AMOUNT)

    book_id = books.create_book(Book(title=title, description=description, amount=amount, owner_id=actor.id))
    logger.info("Book %s created by user %s (amount=%d)", book_id, actor.id, amount)
    return books.get_book(book_id)


def list_books(books: BookStore) -> list[Book]:
    return books.list_books()


def get_book(books: BookStore, book_id: str) -> Book:
    book = books.get_book(book_id, with_owner=True)
    if book is None:
        raise NotFound(_BOOK_NOT_FOUND)
    return book


def update_book(
    books: BookStore,
    actor: User,
    book_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    amount: Optional[int] = None,
) -> Book:
    """Partially update a book. Only non-empty title/description and a non-None amount are applied."""
    book = _require_book(books, book_id)
    enforce(actor, owner_or_admin(book.owner_id, "You are not authorized to update this book"))
    if amount is not None and amount < 0:
        raise ValidationError(_NEGATIVE_AMOUNT)

    updates: dict = {}
    if title:
        updates["title"] = title
    if description:
        updates["description"] = description
    if amount is not None:
        updates["amount"] = amount

    if updates:
        books.update_book(book_id, **updates)
    return books.get_book(book_id)


def delete_book(books: BookStore, actor: User, book_id: str) -> None:
    book = _require_book(books, book_id)
    enforce(actor, owner_or_admin(book.owner_id, "You are not authorized to delete this book"))
    books.delete_book(book_id)
    logger.info("Book %s deleted by user %s", book_id, actor.id)


# ---------------------------------------------------------------------------
# Purchase transaction
# ---------------------------------------------------------------------------


def purchase_book(db: Database, books: BookStore, users: UserStore, actor: User, book_id: str) -> Purchase:
    """Buy one copy of a book.

    Checks, in order: the book exists, the buyer is not its owner, stock is
    above zero. Then decrements stock and credits the buyer atomically.

    Raises:
        NotFound          -- no such book
        InvalidOperation  -- actor owns the book (regardless of stock)
        OutOfStock        -- amount is 0, including when a concurrent buyer won the race
        Unauthenticated   -- the buyer's account vanished mid-request
    """
    book = _require_book(books, book_id)
    if book.owner_id == actor.id:
        raise InvalidOperation("You cannot buy your own book")
    if book.amount <= 0:
        raise OutOfStock("Book is out of stock")

    def _buy(conn) -> Purchase:
        new_amount = books.decrement_stock(book_id, conn)
        if new_amount is None:
            raise OutOfStock("Book is out of stock")
        purchase_count = users.increment_purchase_count(actor.id, conn)
        if purchase_count is None:
            raise Unauthenticated("User no longer exists")
        book.amount = new_amount
        return Purchase(book=book, purchase_count=purchase_count)

    purchase = db.with_transaction(_buy)
    logger.info(
        "User %s bought book %s (stock now %d, purchases %d)",
        actor.id,
        book_id,
        purchase.book.amount,
        purchase.purchase_count,
    )
    return purchase
