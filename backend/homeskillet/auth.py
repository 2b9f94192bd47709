# backend/homeskillet/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_db
from .errors import AuthenticationError
from .models import User
from .services.auth_service import decode_access_token


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = str(authorization).partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> User:
    """
    Resolves the caller from `Authorization: Bearer <token>`.

    The user row is re-read on every request so a deleted account or a changed
    user type takes effect immediately, whatever the token still claims.
    """
    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError("Access token is required", code="token_missing")

    claims = decode_access_token(token)
    user_id = str((claims or {}).get("id") or (claims or {}).get("sub") or "")
    if not user_id:
        raise AuthenticationError("Invalid or expired token", code="token_invalid")

    user = db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise AuthenticationError("User not found", code="user_not_found")

    request.state.user_id = user.id
    return user
