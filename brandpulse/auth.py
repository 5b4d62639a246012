"""
Authentication module with JWT tokens.

Handles password hashing, token generation and verification. Secrets and
lifetimes come from ``Settings``.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field

from brandpulse.clock import utcnow
from brandpulse.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Token(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Data extracted from JWT token."""
    user_id: int
    email: str
    token_type: str = "access"


class UserCreate(BaseModel):
    """User registration payload."""
    email: EmailStr
    password: str = Field(min_length=8)
    business_name: Optional[str] = None


class UserLogin(BaseModel):
    """User login payload."""
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    """User response (no password)."""
    id: int
    email: str
    created_at: datetime

    class Config:
        from_attributes = True


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: int, email: str, token_type: str, expires_delta: timedelta,
            settings: Settings) -> str:
    to_encode = {
        "user_id": user_id,
        "email": email,
        "exp": utcnow() + expires_delta,
        "type": token_type,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None,
                        settings: Optional[Settings] = None) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's database ID
        email: User's email
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)
    return _encode(user_id, email, "access", expires_delta, settings)


def create_refresh_token(user_id: int, email: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return _encode(user_id, email, "refresh",
                   timedelta(days=settings.jwt_refresh_token_expire_days), settings)


def verify_token(token: str, expected_type: str = "access",
                 settings: Optional[Settings] = None) -> Optional[TokenData]:
    """
    Verify a JWT token and extract data.

    Args:
        token: JWT token string
        expected_type: "access" or "refresh"

    Returns:
        TokenData if valid, None if invalid, expired or of the wrong type
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning(f"Invalid token: {e}")
        return None

    user_id = payload.get("user_id")
    email = payload.get("email")
    token_type = payload.get("type", "access")

    if user_id is None or email is None:
        return None
    if token_type != expected_type:
        logger.warning(f"Rejected {token_type} token where {expected_type} was expected")
        return None

    return TokenData(user_id=user_id, email=email, token_type=token_type)
