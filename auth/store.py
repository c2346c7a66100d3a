"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint, so two concurrent registrations
  with the same address cannot both succeed. create_user() and update_user()
  let sqlalchemy.exc.IntegrityError propagate; callers map it to Conflict.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Connection

from auth.models import Role, User
from core.database import Database, metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users_table = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("age", Integer, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.user.value),
    Column("purchase_count", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Fields a profile update may touch. purchase_count is deliberately absent:
# only increment_purchase_count() changes it.
_MUTABLE_FIELDS = {"name", "email", "age", "hashed_password", "role"}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(db)
        user_id = store.create_user(User(name="Ann", email="ann@example.com", age=30,
                                         hashed_password=hash_password("secret")))
        user = store.get_by_email("ann@example.com")
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def count(self) -> int:
        with self.db.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users_table)).scalar()
        return result or 0

    def create_user(self, user: User) -> str:
        """Insert a new user and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if the email is already registered.
        """
        user_id = uuid.uuid4().hex
        stamp = now_iso()
        with self.db.transaction() as conn:
            conn.execute(
                users_table.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    age=user.age,
                    role=user.role,
                    purchase_count=0,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return user_id

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.db.engine.connect() as conn:
            row = conn.execute(users_table.select().where(users_table.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str, conn: Connection | None = None) -> User | None:
        """Look up a user by id. Returns None if not found."""
        with self.db.transaction(conn) as c:
            row = c.execute(users_table.select().where(users_table.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by creation time. Admin-only operation."""
        with self.db.engine.connect() as conn:
            rows = conn.execute(users_table.select().order_by(users_table.c.created_at)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: str, **fields) -> bool:
        """Overwrite the supplied profile fields on an existing user.

        Accepted fields: name, email, age, hashed_password, role. Unknown keys
        raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        Raises sqlalchemy.exc.IntegrityError if the new email is taken.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        with self.db.transaction() as conn:
            result = conn.execute(
                users_table.update().where(users_table.c.id == user_id).values(updated_at=now_iso(), **fields)
            )
        return result.rowcount > 0

    def increment_purchase_count(self, user_id: str, conn: Connection | None = None) -> int | None:
        """Add one to the user's purchase_count. Returns the new value, or None if the user is gone.

        Pass `conn` to run inside the caller's transaction.
        """
        with self.db.transaction(conn) as c:
            result = c.execute(
                users_table.update()
                .where(users_table.c.id == user_id)
                .values(purchase_count=users_table.c.purchase_count + 1, updated_at=now_iso())
            )
            if result.rowcount == 0:
                return None
            return c.execute(select(users_table.c.purchase_count).where(users_table.c.id == user_id)).scalar()

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Books the user created are left in place; their owner resolves to None.
        """
        with self.db.transaction() as conn:
            result = conn.execute(users_table.delete().where(users_table.c.id == user_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        age=row.age,
        role=row.role,
        purchase_count=row.purchase_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
