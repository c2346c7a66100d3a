"""
api/routes/auth.py -- Registration, login and logout.

Routes:
  POST /api/auth/register  -- create an account; returns user + token (201)
  POST /api/auth/login     -- email/password login; returns user + token
  POST /api/auth/logout    -- stateless; tokens simply expire

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on responses that carry a token.
  Wrong email and wrong password produce the same "Invalid credentials".
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request, Response
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, UserOut
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings
from core.errors import Conflict, Forbidden, Unauthenticated, ValidationError

logger = logging.getLogger("bookstore.api")

_settings = get_settings()

# Auth policy: every route here is public.
router = APIRouter()


@router.post("/auth/register", response_model=AuthResponse, response_model_exclude_none=True, status_code=201)
def register(request: Request, response: Response, body: Optional[RegisterRequest] = None) -> AuthResponse:
    """Create an account and log it in.

    Email uniqueness is checked up front for the common case and again by the
    UNIQUE constraint, so a concurrent duplicate still comes back as Conflict.
    """
    body = body or RegisterRequest()
    if not body.name or not body.email or not body.password or body.age is None:
        raise ValidationError("Please enter all fields")

    role = body.role.value if body.role is not None else Role.user.value
    if role == Role.admin.value and not _settings.admin_self_registration:
        raise Forbidden("Admin accounts cannot be self-registered")

    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_email(body.email) is not None:
        raise Conflict("User already exists")

    try:
        user_id = user_store.create_user(
            User(
                name=body.name,
                email=body.email,
                age=body.age,
                role=role,
                hashed_password=hash_password(body.password),
            )
        )
    except IntegrityError as exc:
        raise Conflict("User already exists") from exc

    user = user_store.get_by_id(user_id)
    logger.info("Registered user %s (role=%s)", user_id, role)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(data=UserOut.from_user(user), token=create_access_token(user_id))


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=AuthResponse, response_model_exclude_none=True)
def login(request: Request, response: Response, body: Optional[LoginRequest] = None) -> AuthResponse:
    """Authenticate with email and password; return the account and a bearer token."""
    body = body or LoginRequest()
    if not body.email or not body.password:
        raise ValidationError("Please provide email and password")

    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.warning("Failed login from %s", request.client.host if request.client else "unknown")
        raise Unauthenticated("Invalid credentials")

    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(data=UserOut.from_user(user), token=create_access_token(user.id))


@router.post("/auth/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    """Tokens are not tracked server-side; clients discard theirs."""
    return MessageResponse(message="Logged out successfully")
