# File: app/routers/auth.py

import logging
import time
from datetime import datetime, timezone

import jwt
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthenticationError, AuthorizationError, EmailAlreadyRegistered, NotFoundError, ValidationError
from app.core.security import ALGO, get_current_user, hash_password, make_tokens, verify_password
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.auth import EmailOnly, LoginIn, RegisterIn, ResetIn, TokenOut
from app.schemas.user import UserOut
from app.services.notify_email import send_email_verification, send_reset_password

router = APIRouter(prefix="/auth", tags=["auth"])

# Email verification / reset tokens are short-lived JWTs with a purpose claim
EMAIL_TTL = 3600

def make_email_token(email: str, purpose: str) -> str:
    return jwt.encode(
        {"sub": email, "purpose": purpose, "exp": int(time.time()) + EMAIL_TTL},
        settings.jwt_secret,
        algorithm=ALGO,
    )

def parse_email_token(token: str, purpose: str) -> str:
    data = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    if data.get("purpose") != purpose:
        raise jwt.InvalidTokenError("bad purpose")
    return data["sub"]

@router.post("/register", response_model=UserOut, status_code=201)
def register(body: RegisterIn, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == body.email).first():
        raise EmailAlreadyRegistered()

    user = User(
        email=body.email,
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        phone_number=body.phone_number,
        hashed_password=hash_password(body.password),
        role=UserRole.citizen,
        is_active=True,
        is_verified=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    background_tasks.add_task(send_email_verification, user.email, make_email_token(user.email, "verify"))
    return user

@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first()
    if not user or not user.hashed_password or not verify_password(body.password, user.hashed_password):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthorizationError("Your account has been deactivated. Please contact support.")
    if not user.is_verified:
        raise AuthorizationError("Please verify your email address before signing in.")
    user.last_login = datetime.now(timezone.utc)
    db.commit()
    return make_tokens(user)

@router.get("/me", response_model=UserOut)
def me(current: User = Depends(get_current_user)):
    return current

@router.post("/verify-email")
def verify_email(token: str, db: Session = Depends(get_db)):
    try:
        email = parse_email_token(token, "verify")
    except jwt.ExpiredSignatureError:
        raise ValidationError("Verification link has expired. Please request a new one.")
    except jwt.InvalidTokenError:
        raise ValidationError("Invalid verification link. Please check the link or request a new one.")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("User not found")
    if user.is_verified:
        return {"ok": True, "message": "Email already verified"}

    user.is_verified = True
    db.commit()
    return {"ok": True, "message": "Email verified successfully"}

@router.post("/forgot")
def forgot(body: EmailOnly, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first()
    if user:
        background_tasks.add_task(send_reset_password, user.email, make_email_token(user.email, "reset"))
    else:
        logging.info(f"Password reset requested for unknown email {body.email}")
    return {"ok": True, "message": "If an account exists with this email, a password reset link has been sent."}

@router.post("/reset")
def reset(body: ResetIn, db: Session = Depends(get_db)):
    try:
        email = parse_email_token(body.token, "reset")
    except jwt.ExpiredSignatureError:
        raise ValidationError("Password reset link has expired. Please request a new one.")
    except jwt.InvalidTokenError:
        raise ValidationError("Invalid or expired reset link. Please request a new password reset.")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthorizationError("Account is deactivated. Please contact support.")

    user.hashed_password = hash_password(body.password)
    db.commit()
    return {"ok": True, "message": "Password reset successfully. You can now sign in with your new password."}
