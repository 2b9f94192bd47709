# backend/homeskillet/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..db import get_db
from ..errors import AuthenticationError, ConflictError, ValidationFailed, ok
from ..models import User
from ..schemas import ForgotPasswordIn, LoginIn, MeUpdateIn, RegisterIn, ResetPasswordIn
from ..services import auth_service
from ..views import user_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    try:
        res = auth_service.register_user(
            db,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            user_type=payload.user_type,
        )
    except ValueError:
        raise ConflictError("User with this email already exists")
    return ok({"user": user_view(res.user), "token": res.token})


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    try:
        res = auth_service.login_user(db, email=payload.email, password=payload.password)
    except ValueError:
        raise AuthenticationError("Invalid email or password", code="invalid_credentials")
    return ok({"user": user_view(res.user), "token": res.token})


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return ok({"user": user_view(user)})


@router.put("/me")
def update_me(payload: MeUpdateIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if payload.email is not None and payload.email != user.email:
        other = auth_service.get_user_by_email(db, payload.email)
        if other is not None and other.id != user.id:
            raise ConflictError("Email is already in use")
        user.email = payload.email
    if payload.first_name is not None:
        user.first_name = payload.first_name.strip()
    if payload.last_name is not None:
        user.last_name = payload.last_name.strip()

    db.add(user)
    db.commit()
    db.refresh(user)
    return ok({"user": user_view(user)})


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordIn, db: Session = Depends(get_db)):
    user = auth_service.get_user_by_email(db, payload.email)
    if user is not None:
        raw = auth_service.issue_password_reset(db, user)
        db.commit()
        log.info("password reset issued", extra={"user_id": user.id})
        if not settings.is_prod:
            # no mailer; local setups read the token from the debug log
            log.debug("password reset token for %s: %s", user.email, raw)

    # same answer whether or not the account exists
    return ok({"message": "If an account with this email exists, a password reset link has been sent."})


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    try:
        user = auth_service.consume_password_reset(db, token=payload.token, new_password=payload.password)
    except ValueError:
        raise ValidationFailed("Invalid or expired reset token", code="invalid_reset_token")
    db.commit()
    log.info("password reset completed", extra={"user_id": user.id})
    return ok({"message": "Password has been reset successfully"})


@router.post("/logout")
def logout(user: User = Depends(get_current_user)):
    # tokens are stateless; the client drops it
    return ok({"message": "Logged out successfully"})
