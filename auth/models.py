"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; api/models.py owns the wire representation.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "user"
    admin = "admin"


@dataclass
class User:
    """A registered bookstore account.

    hashed_password is a bcrypt hash. It never leaves the process: the API
    response models have no field for it.

    purchase_count only changes through catalog/service.purchase_book().
    """

    name: str
    email: str  # unique, compared case-sensitively
    age: int
    role: str = Role.user.value
    id: str | None = None
    hashed_password: str | None = None
    purchase_count: int = 0
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value
