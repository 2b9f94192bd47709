# backend/homeskillet/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt  # PyJWT

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import User

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# -------------------------
# Passwords
# -------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
        test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
        return hmac.compare_digest(test, dk)
    except (ValueError, TypeError):
        return False


# -------------------------
# Access tokens
# -------------------------
def create_access_token(user: User, *, minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "id": str(user.id),
        "email": str(user.email),
        "userType": str(user.user_type),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Claims for a valid token, None for anything else (bad signature, expired, garbage)."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        return None


# -------------------------
# Password reset tokens
# -------------------------
def _hash_reset_token(raw: str) -> str:
    digest = hmac.new(settings.reset_token_pepper.encode(), raw.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode()


def issue_password_reset(db: Session, user: User) -> str:
    """
    Stores the HMAC of a fresh single-use token on the user and returns the raw
    token. Caller commits.
    """
    raw = secrets.token_hex(32)
    user.reset_token_hash = _hash_reset_token(raw)
    user.reset_token_expires_at = _now() + timedelta(minutes=int(settings.password_reset_exp_minutes))
    db.add(user)
    return raw


def consume_password_reset(db: Session, *, token: str, new_password: str) -> User:
    hashed = _hash_reset_token(token)
    user = db.scalar(select(User).where(User.reset_token_hash == hashed))
    if user is None or user.reset_token_expires_at is None or user.reset_token_expires_at < _now():
        raise ValueError("invalid_or_expired_token")

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.add(user)
    return user


# -------------------------
# Register / login
# -------------------------
@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()))


def register_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    user_type: str,
) -> AuthResult:
    email = email.strip().lower()
    if get_user_by_email(db, email) is not None:
        raise ValueError("email_taken")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        user_type=user_type,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log.info("user registered", extra={"user_id": user.id})
    return AuthResult(user=user, token=create_access_token(user))


def login_user(db: Session, *, email: str, password: str) -> AuthResult:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise ValueError("invalid_credentials")

    user.last_login_at = _now()
    db.add(user)
    db.commit()
    db.refresh(user)

    log.info("user logged in", extra={"user_id": user.id})
    return AuthResult(user=user, token=create_access_token(user))
