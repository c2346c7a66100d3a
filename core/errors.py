"""
core/errors.py -- Domain error taxonomy for the bookstore.

Stores and services raise these; api/main.py owns the single exception handler
that turns any BookstoreError into the JSON envelope
{"success": false, "message": ..., "code": ...} with the matching status.

Each operation validates up front and raises the most specific error before
any write starts.

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations


class BookstoreError(Exception):
    """Base class. Subclasses pin status_code, code and a default message."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookstoreError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class Unauthenticated(BookstoreError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Not authorized"


class Forbidden(BookstoreError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not authorized to perform this action"


class NotFound(BookstoreError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Conflict(BookstoreError):
    # Duplicates are reported as 400, not 409.
    status_code = 400
    code = "conflict"
    default_message = "Resource already exists"


class InvalidOperation(BookstoreError):
    status_code = 400
    code = "invalid_operation"
    default_message = "Operation not allowed"


class OutOfStock(BookstoreError):
    status_code = 400
    code = "out_of_stock"
    default_message = "Book is out of stock"


class InternalError(BookstoreError):
    pass
