# File: app/core/security.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import time, jwt
from sqlalchemy.orm import Session
from passlib.hash import bcrypt_sha256
from app.core.config import settings
from app.core.errors import AuthenticationError, AuthorizationError
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.auth import Actor

ALGO = "HS256"
bearer = HTTPBearer(auto_error=False)

def hash_password(raw: str) -> str:
    return bcrypt_sha256.hash(raw)

def verify_password(raw: str, hashed: str) -> bool:
    return bcrypt_sha256.verify(raw, hashed)

def _make_token(sub: str, role: str, ttl: int) -> str:
    now = int(time.time())
    payload = {"sub": sub, "role": role, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def make_tokens(user: User) -> dict:
    ttl = settings.access_token_ttl_minutes * 60
    return {
        "access_token": _make_token(user.email, user.role.value, ttl),
        "token_type": "bearer",
        "expires_in": ttl,
    }

def _decode_token(creds: Optional[HTTPAuthorizationCredentials]) -> dict:
    if not creds:
        raise AuthenticationError()
    try:
        return jwt.decode(creds.credentials, settings.jwt_secret, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired. Please login again.")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token. Please login again.")

def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                     db: Session = Depends(get_db)) -> User:
    payload = _decode_token(creds)
    email = payload.get("sub")
    if not email:
        raise AuthenticationError("Invalid token payload")
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthorizationError("Your account has been deactivated. Please contact support.")
    return user

def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                      db: Session = Depends(get_db)) -> Optional[User]:
    # anonymous submission is allowed; a bad token simply means no user
    if not creds:
        return None
    try:
        payload = jwt.decode(creds.credentials, settings.jwt_secret, algorithms=[ALGO])
    except jwt.InvalidTokenError:
        return None
    email = payload.get("sub")
    if not email:
        return None
    user = db.query(User).filter(User.email == email).first()
    if user and not user.is_active:
        return None
    return user

def require_role(*roles):
    role_values = [r.value if isinstance(r, UserRole) else r for r in roles]
    def _dep(user: User = Depends(get_current_user)):
        if user.role.value not in role_values:
            raise AuthorizationError("You do not have permission to perform this action")
        return user
    return _dep

def require_verified_user(user: User = Depends(get_current_user)):
    if not user.is_verified:
        raise AuthorizationError("Please verify your email address to access this resource")
    return user

def actor_of(user: User) -> Actor:
    return Actor(id=user.id, role=user.role.value, is_verified=user.is_verified)

def get_admin_actor(user: User = Depends(require_role(UserRole.admin))) -> Actor:
    return actor_of(user)

def get_verified_actor(user: User = Depends(get_current_user)) -> Actor:
    actor = actor_of(user)
    if not actor.is_verified:
        raise AuthorizationError("Please verify your email address to access this resource")
    return actor
