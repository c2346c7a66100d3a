"""
API request and response models for the bookstore REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Every response is the same envelope: {success, message?, data?, token?, count?}.
Routes are registered with response_model_exclude_none=True so absent keys
are dropped rather than sent as null.

Request bodies mark "required" fields Optional on purpose: a missing field is
a domain ValidationError with a specific message ("Please enter all fields"),
raised by the route or service, not a generic schema failure. A request with
no body at all is treated the same as an empty object. Wrong types, including
booleans where an integer is expected, still fail schema validation and come
back as 400.

No response model has a password field, so a hash can never be serialized.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StringConstraints, field_validator

from auth.models import User
from catalog.models import Book, Owner, Purchase

# bcrypt hashes at most 72 bytes and rejects longer input.
_BCRYPT_MAX_BYTES = 72

# Free-text fields are trimmed. Passwords are not: bcrypt hashes exactly what was sent.
_Stripped = Annotated[str, StringConstraints(strip_whitespace=True)]


class RoleEnum(str, Enum):
    user = "user"
    admin = "admin"


def _check_password_length(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {_BCRYPT_MAX_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    name: Optional[_Stripped] = Field(default=None, max_length=255)
    email: Optional[_Stripped] = Field(default=None, max_length=255)
    password: Optional[str] = None
    age: Optional[StrictInt] = Field(default=None, ge=0, le=150)
    role: Optional[RoleEnum] = None

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_length(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: Optional[_Stripped] = Field(default=None, max_length=255)
    password: Optional[str] = None


class UserUpdate(BaseModel):
    """Request body for PUT /api/users/{user_id}. Absent fields keep their value."""

    name: Optional[_Stripped] = Field(default=None, min_length=1, max_length=255)
    email: Optional[_Stripped] = Field(default=None, min_length=1, max_length=255)
    age: Optional[StrictInt] = Field(default=None, ge=0, le=150)
    password: Optional[str] = Field(default=None, min_length=1)
    role: Optional[RoleEnum] = None

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_length(value)


class BookCreate(BaseModel):
    """Request body for POST /api/books."""

    title: Optional[_Stripped] = Field(default=None, max_length=255)
    description: Optional[_Stripped] = None
    amount: Optional[StrictInt] = None


class BookUpdate(BaseModel):
    """Request body for PUT /api/books/{book_id}. Absent fields keep their value."""

    title: Optional[_Stripped] = Field(default=None, max_length=255)
    description: Optional[_Stripped] = None
    amount: Optional[StrictInt] = None


# ---------------------------------------------------------------------------
# Resource representations
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user account."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    age: int
    role: str
    purchase_count: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            age=user.age,
            role=user.role,
            purchase_count=user.purchase_count,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class OwnerOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str

    @classmethod
    def from_owner(cls, owner: Owner) -> "OwnerOut":
        return cls(id=owner.id, name=owner.name, email=owner.email)


class BookOut(BaseModel):
    """A book. `owner` is present on reads that resolve the creator."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    amount: int
    owner_id: str
    owner: Optional[OwnerOut] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_book(cls, book: Book) -> "BookOut":
        return cls(
            id=book.id,
            title=book.title,
            description=book.description,
            amount=book.amount,
            owner_id=book.owner_id,
            owner=OwnerOut.from_owner(book.owner) if book.owner is not None else None,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


class PurchasedBook(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    amount: int


class PurchaseBuyer(BaseModel):
    model_config = ConfigDict(frozen=True)

    purchase_count: int


class PurchaseOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    book: PurchasedBook
    user: PurchaseBuyer

    @classmethod
    def from_purchase(cls, purchase: Purchase) -> "PurchaseOut":
        return cls(
            book=PurchasedBook(id=purchase.book.id, title=purchase.book.title, amount=purchase.book.amount),
            user=PurchaseBuyer(purchase_count=purchase.purchase_count),
        )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class AuthResponse(BaseModel):
    """Register/login result: the account plus a fresh bearer token."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: UserOut
    token: str


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: UserOut


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    data: list[UserOut]


class BookResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: BookOut


class BookListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    data: list[BookOut]


class PurchaseResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Book purchased successfully"
    data: PurchaseOut


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET / and GET /api/health."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Book Store API is running"
    version: str
    database: str
