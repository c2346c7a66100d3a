"""
api/routes/users.py -- User profile management.

Routes (in registration order; /users/me must precede /users/{user_id}):
  GET    /api/users/me         -- the caller's own profile
  GET    /api/users            -- all users (admin only)
  GET    /api/users/{user_id}  -- one user (self or admin)
  PUT    /api/users/{user_id}  -- partial profile update (self or admin; role changes admin only)
  DELETE /api/users/{user_id}  -- delete an account (admin only, not their own)

Ownership checks go through auth/guards.py, the same policy the book routes use.
Guards run before the lookup so non-admins get 403 for any other id and
cannot probe which ids exist.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.models import MessageResponse, UserListResponse, UserOut, UserResponse, UserUpdate
from auth.dependencies import get_current_user, require_admin
from auth.guards import admin_for_role_change, enforce, owner_or_admin
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from core.errors import Conflict, InvalidOperation, NotFound

logger = logging.getLogger("bookstore.api")

# Auth policy:
# - GET    /users/me:    requires auth (get_current_user)
# - GET    /users:       requires admin (require_admin)
# - GET    /users/{id}:  requires auth + owner_or_admin guard
# - PUT    /users/{id}:  requires auth + owner_or_admin + admin_for_role_change guards
# - DELETE /users/{id}:  requires admin (require_admin)
router = APIRouter()

_USER_NOT_FOUND = "User not found"


def _users(request: Request) -> UserStore:
    return request.app.state.user_store


@router.get("/users/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(data=UserOut.from_user(current_user))


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request, current_user: User = Depends(require_admin)) -> UserListResponse:
    users = _users(request).list_users()
    return UserListResponse(count=len(users), data=[UserOut.from_user(u) for u in users])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: str, current_user: User = Depends(get_current_user)) -> UserResponse:
    enforce(current_user, owner_or_admin(user_id, "You are not authorized to view this user"))
    user = _users(request).get_by_id(user_id)
    if user is None:
        raise NotFound(_USER_NOT_FOUND)
    return UserResponse(data=UserOut.from_user(user))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: str,
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Overwrite only the supplied fields. A new password is re-hashed; email must stay unique."""
    user_store = _users(request)
    enforce(current_user, owner_or_admin(user_id, "You are not authorized to update this user"))
    target = user_store.get_by_id(user_id)
    if target is None:
        raise NotFound(_USER_NOT_FOUND)
    requested_role = body.role.value if body.role is not None else None
    enforce(current_user, admin_for_role_change(requested_role, target.role))

    updates: dict = {}
    if body.name is not None:
        updates["name"] = body.name
    if body.age is not None:
        updates["age"] = body.age
    if requested_role is not None:
        updates["role"] = requested_role
    if body.password is not None:
        updates["hashed_password"] = hash_password(body.password)
    if body.email is not None and body.email != target.email:
        existing = user_store.get_by_email(body.email)
        if existing is not None:
            raise Conflict("Email already in use")
        updates["email"] = body.email

    if updates:
        try:
            user_store.update_user(user_id, **updates)
        except IntegrityError as exc:
            raise Conflict("Email already in use") from exc

    return UserResponse(data=UserOut.from_user(user_store.get_by_id(user_id)))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(request: Request, user_id: str, current_user: User = Depends(require_admin)) -> MessageResponse:
    """Delete an account. The caller's own account is refused so an admin cannot lock themselves out."""
    if user_id == current_user.id:
        raise InvalidOperation("You cannot delete your own account")
    if not _users(request).delete_user(user_id):
        raise NotFound(_USER_NOT_FOUND)
    logger.info("User %s deleted by admin %s", user_id, current_user.id)
    return MessageResponse(message="User deleted successfully")
