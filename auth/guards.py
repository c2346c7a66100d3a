"""
auth/guards.py -- Role policy and composable authorization guards.

can_act_on() is the one place the ownership rule lives. Book and user
operations both go through it instead of re-implementing the check.

A guard is a plain function `guard(actor) -> BookstoreError | None`:
None means "pass", an error instance means "fail with this reason".
enforce() runs guards in order and raises the first failure, so a route's
authorization pipeline is an explicit, ordered list:

    enforce(actor, owner_or_admin(book.owner_id, "You are not authorized to update this book"))
    enforce(actor, admin_only(), admin_for_role_change(body.role))

Authentication itself is not a guard -- auth/dependencies.py resolves the
actor before any guard runs.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from auth.models import User
from core.errors import BookstoreError, Forbidden

Guard = Callable[[User], Optional[BookstoreError]]


def can_act_on(actor: User, owner_id: str | None) -> bool:
    """True iff actor is an admin or actor owns the resource."""
    if actor.is_admin:
        return True
    return owner_id is not None and actor.id == owner_id


def enforce(actor: User, *guards: Guard) -> None:
    """Run guards in order; raise the first failure."""
    for guard in guards:
        error = guard(actor)
        if error is not None:
            raise error


# ---------------------------------------------------------------------------
# Guard factories
# ---------------------------------------------------------------------------


def admin_only(message: str = "Admin access required") -> Guard:
    def guard(actor: User) -> BookstoreError | None:
        return None if actor.is_admin else Forbidden(message)

    return guard


def owner_or_admin(owner_id: str | None, message: str = "You are not authorized to perform this action") -> Guard:
    def guard(actor: User) -> BookstoreError | None:
        return None if can_act_on(actor, owner_id) else Forbidden(message)

    return guard


def admin_for_role_change(requested_role: str | None, current_role: str | None = None) -> Guard:
    """Only admins may set a role, unless the role is unchanged."""

    def guard(actor: User) -> BookstoreError | None:
        if requested_role is None or requested_role == current_role or actor.is_admin:
            return None
        return Forbidden("Only an admin can change roles")

    return guard
