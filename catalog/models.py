"""
catalog/models.py -- Domain dataclasses for the book catalog.

Pure data containers. Inventory rules (ownership, non-negative stock, the
purchase transaction) live in catalog/service.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Owner:
    """Public projection of the user who created a book."""

    id: str
    name: str
    email: str


@dataclass
class Book:
    """A book offered for sale.

    amount is the remaining stock and never goes below zero.
    owner_id is fixed at creation. owner is only populated by the read
    queries that join the users table, and stays None when the creating
    account has been deleted.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    amount: int
    owner_id: str
    id: Optional[str] = None
    owner: Optional[Owner] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Purchase:
    """Outcome of a successful buy: the book after the decrement and the buyer's new total."""

    book: Book
    purchase_count: int
