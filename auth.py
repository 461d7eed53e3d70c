"""
Password hashing, bearer tokens and the authenticated-user dependency.
"""

from datetime import timedelta
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pymongo.database import Database

import settings
from database import get_db, now_utc, serialize_doc, to_object_id
from exceptions import AuthError, NotFoundError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_token(user_id: str) -> str:
    now = now_utc()
    payload = {
        "id": user_id,
        "iat": now,
        "exp": now + timedelta(days=settings.TOKEN_TTL_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> str:
    """Return the user id inside a token, or raise AuthError."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Not authorized, token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Not authorized, token failed")

    user_id = payload.get("id")
    if not user_id:
        raise AuthError("Not authorized, token failed")
    return user_id


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """Resolve the bearer token to the acting user's document (password stripped)."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")

    user_id = decode_token(credentials.credentials)
    try:
        user = db["user"].find_one({"_id": to_object_id(user_id, "User")})
    except NotFoundError:
        user = None
    if not user:
        raise AuthError("Not authorized, user not found")
    return serialize_doc(user)
