"""
api/routes/books.py -- Book inventory and purchase routes.

Routes:
  GET    /api/books               -- list all books with owner name/email (public)
  POST   /api/books               -- create a book owned by the caller (auth)
  GET    /api/books/{book_id}     -- single book (public)
  PUT    /api/books/{book_id}     -- partial update (owner or admin)
  DELETE /api/books/{book_id}     -- delete (owner or admin)
  POST   /api/books/{book_id}/buy -- buy one copy (auth, not the owner)

All rules live in catalog/service.py; handlers unpack, delegate, and wrap
the result in the response envelope.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import (
    BookCreate,
    BookListResponse,
    BookOut,
    BookResponse,
    BookUpdate,
    MessageResponse,
    PurchaseOut,
    PurchaseResponse,
)
from auth.dependencies import get_current_user
from auth.models import User
from catalog import service
from catalog.store import BookStore

# Auth policy:
# - GET  /books, /books/{id}:   public
# - POST /books:                requires auth (get_current_user)
# - PUT/DELETE /books/{id}:     requires auth + owner_or_admin guard in the service
# - POST /books/{id}/buy:       requires auth; owner is refused in the service
router = APIRouter()


def _books(request: Request) -> BookStore:
    return request.app.state.book_store


@router.get("/books", response_model=BookListResponse, response_model_exclude_none=True)
def list_books(request: Request) -> BookListResponse:
    books = service.list_books(_books(request))
    return BookListResponse(count=len(books), data=[BookOut.from_book(b) for b in books])


@router.post("/books", response_model=BookResponse, response_model_exclude_none=True, status_code=201)
def create_book(
    request: Request,
    current_user: User = Depends(get_current_user),
    body: Optional[BookCreate] = None,
) -> BookResponse:
    body = body or BookCreate()
    book = service.create_book(_books(request), current_user, body.title, body.description, body.amount)
    return BookResponse(data=BookOut.from_book(book))


@router.get("/books/{book_id}", response_model=BookResponse, response_model_exclude_none=True)
def get_book(request: Request, book_id: str) -> BookResponse:
    return BookResponse(data=BookOut.from_book(service.get_book(_books(request), book_id)))


@router.put("/books/{book_id}", response_model=BookResponse, response_model_exclude_none=True)
def update_book(
    request: Request,
    book_id: str,
    body: BookUpdate,
    current_user: User = Depends(get_current_user),
) -> BookResponse:
    book = service.update_book(
        _books(request),
        current_user,
        book_id,
        title=body.title,
        description=body.description,
        amount=body.amount,
    )
    return BookResponse(data=BookOut.from_book(book))


@router.delete("/books/{book_id}", response_model=MessageResponse)
def delete_book(
    request: Request,
    book_id: str,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    service.delete_book(_books(request), current_user, book_id)
    return MessageResponse(message="Book deleted successfully")


@router.post("/books/{book_id}/buy", response_model=PurchaseResponse)
def buy_book(
    request: Request,
    book_id: str,
    current_user: User = Depends(get_current_user),
) -> PurchaseResponse:
    purchase = service.purchase_book(
        request.app.state.db,
        _books(request),
        request.app.state.user_store,
        current_user,
        book_id,
    )
    return PurchaseResponse(data=PurchaseOut.from_purchase(purchase))
