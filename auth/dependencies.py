"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The Access Guard: resolves `Authorization: Bearer <token>` to the User the
token was issued for, reloading the account from the store on every request.

get_current_user() raises Unauthenticated with the specific reason.
require_admin() wraps get_current_user() and raises Forbidden if not admin.

Layer rule: no imports from api/ or catalog/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from auth.guards import admin_only, enforce
from auth.models import User
from auth.store import UserStore
from auth.tokens import decode_access_token
from core.errors import Unauthenticated

logger = logging.getLogger("bookstore.auth")

_BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise Unauthenticated("Not authorized, no token provided")

    user_id = decode_access_token(token)
    if user_id is None:
        logger.warning("Invalid or expired token on %s %s", request.method, request.url.path)
        raise Unauthenticated("Not authorized, token invalid or expired")

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        raise Unauthenticated("User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require admin role. Unauthenticated if no valid token, Forbidden if not admin."""
    enforce(user, admin_only())
    return user
