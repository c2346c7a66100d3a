"""
tests/test_purchase.py -- Unit tests for catalog.service.purchase_book.

Runs against an in-memory database without the HTTP layer so the
transaction boundary can be probed directly:
  - a successful buy moves stock down and purchase_count up by exactly one
  - every rejected buy leaves both counters untouched
  - a stale read that loses the race for the last copy becomes OutOfStock
  - a failure on the second write rolls back the first
"""

from __future__ import annotations

import pytest

from catalog import service
from catalog.models import Book
from core.errors import InvalidOperation, NotFound, OutOfStock, Unauthenticated


@pytest.fixture
def seller(make_user):
    return make_user(name="Seller")


@pytest.fixture
def buyer(make_user):
    return make_user(name="Buyer")


def _stock(book_store, amount: int, owner_id: str) -> str:
    return book_store.create_book(Book(title="Dune", description="Spice", amount=amount, owner_id=owner_id))


def test_buy_moves_both_counters_by_one(db, book_store, user_store, seller, buyer):
    book_id = _stock(book_store, 5, seller.id)

    purchase = service.purchase_book(db, book_store, user_store, buyer, book_id)

    assert purchase.book.amount == 4
    assert purchase.purchase_count == 1
    assert book_store.get_book(book_id).amount == 4
    assert user_store.get_by_id(buyer.id).purchase_count == 1


def test_repeat_buys_accumulate(db, book_store, user_store, seller, buyer):
    book_id = _stock(book_store, 3, seller.id)
    for _ in range(3):
        service.purchase_book(db, book_store, user_store, buyer, book_id)

    assert book_store.get_book(book_id).amount == 0
    assert user_store.get_by_id(buyer.id).purchase_count == 3

    with pytest.raises(OutOfStock):
        service.purchase_book(db, book_store, user_store, buyer, book_id)
    assert user_store.get_by_id(buyer.id).purchase_count == 3


def test_out_of_stock_changes_nothing(db, book_store, user_store, seller, buyer):
    book_id = _stock(book_store, 0, seller.id)

    with pytest.raises(OutOfStock) as exc_info:
        service.purchase_book(db, book_store, user_store, buyer, book_id)

    assert exc_info.value.message == "Book is out of stock"
    assert book_store.get_book(book_id).amount == 0
    assert user_store.get_by_id(buyer.id).purchase_count == 0


@pytest.mark.parametrize("amount", [0, 3])
def test_own_book_rejected_regardless_of_stock(db, book_store, user_store, seller, amount):
    book_id = _stock(book_store, amount, seller.id)

    with pytest.raises(InvalidOperation):
        service.purchase_book(db, book_store, user_store, seller, book_id)

    assert book_store.get_book(book_id).amount == amount
    assert user_store.get_by_id(seller.id).purchase_count == 0


def test_admin_cannot_buy_own_book_either(db, book_store, user_store, make_user):
    admin = make_user(name="Admin", role="admin")
    book_id = _stock(book_store, 2, admin.id)

    with pytest.raises(InvalidOperation):
        service.purchase_book(db, book_store, user_store, admin, book_id)


def test_missing_book(db, book_store, user_store, buyer):
    with pytest.raises(NotFound):
        service.purchase_book(db, book_store, user_store, buyer, "doesnotexist")
    assert user_store.get_by_id(buyer.id).purchase_count == 0


def test_stale_read_losing_last_copy_is_out_of_stock(db, book_store, user_store, seller, buyer, monkeypatch):
    book_id = _stock(book_store, 1, seller.id)
    stale = book_store.get_book(book_id)

    # Another buyer takes the last copy between our read and our write.
    assert book_store.decrement_stock(book_id) == 0
    monkeypatch.setattr(book_store, "get_book", lambda *args, **kwargs: stale)

    with pytest.raises(OutOfStock):
        service.purchase_book(db, book_store, user_store, buyer, book_id)

    monkeypatch.undo()
    assert book_store.get_book(book_id).amount == 0
    assert user_store.get_by_id(buyer.id).purchase_count == 0


def test_failed_credit_rolls_back_stock(db, book_store, user_store, seller, buyer, monkeypatch):
    book_id = _stock(book_store, 2, seller.id)

    def _boom(user_id, conn=None):
        raise RuntimeError("write failed")

    monkeypatch.setattr(user_store, "increment_purchase_count", _boom)

    with pytest.raises(RuntimeError):
        service.purchase_book(db, book_store, user_store, buyer, book_id)

    assert book_store.get_book(book_id).amount == 2


def test_vanished_buyer_rolls_back_stock(db, book_store, user_store, seller, buyer):
    book_id = _stock(book_store, 2, seller.id)
    assert user_store.delete_user(buyer.id)

    with pytest.raises(Unauthenticated):
        service.purchase_book(db, book_store, user_store, buyer, book_id)

    assert book_store.get_book(book_id).amount == 2
