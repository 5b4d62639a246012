"""
Authentication routes for user login/registration.

Registering also creates the user's business profile, which is the tenant
every other route is scoped to. It starts without a subscription.
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from brandpulse.models import Business, User
from brandpulse.auth import (
    UserCreate, UserLogin, RefreshRequest, Token, UserResponse,
    hash_password, verify_password, create_access_token, create_refresh_token, verify_token
)
from brandpulse.config import Settings, get_settings
from brandpulse.database import get_db
from brandpulse.errors import Unauthenticated, ValidationError
from brandpulse.routers.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=UserResponse, status_code=201)
def register(user: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user account.

    Args:
        user: UserCreate with email, password and optional business name

    Returns:
        UserResponse with created user info
    """
    logger.info(f"Registration attempt for {user.email}")

    existing = db.scalars(select(User).where(User.email == user.email)).first()
    if existing:
        logger.warning(f"Registration failed: {user.email} already exists")
        raise ValidationError("Email already registered")

    db_user = User(email=user.email, password_hash=hash_password(user.password))
    db_user.business = Business(name=user.business_name, subscription_status="inactive")
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    db.refresh(db_user)

    logger.info(f"User registered: {user.email}")
    return UserResponse.model_validate(db_user)


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """
    Login user and return JWT tokens.

    Args:
        credentials: UserLogin with email and password

    Returns:
        Token with access_token and refresh_token
    """
    logger.info(f"Login attempt for {credentials.email}")

    user = db.scalars(select(User).where(User.email == credentials.email)).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Login failed for {credentials.email}")
        raise Unauthenticated("Invalid credentials")

    logger.info(f"User logged in: {credentials.email}")
    return Token(
        access_token=create_access_token(user.id, user.email, settings=settings),
        refresh_token=create_refresh_token(user.id, user.email, settings=settings),
        token_type="bearer"
    )


@router.post("/refresh", response_model=Token)
def refresh(body: RefreshRequest, settings: Settings = Depends(get_settings)):
    """Exchange a refresh token for a new access token."""
    token_data = verify_token(body.refresh_token, expected_type="refresh", settings=settings)
    if not token_data:
        raise Unauthenticated("Invalid refresh token")

    logger.info(f"Token refreshed for user {token_data.user_id}")
    return Token(
        access_token=create_access_token(token_data.user_id, token_data.email, settings=settings),
        refresh_token=body.refresh_token,
        token_type="bearer"
    )


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    """Current user info."""
    return UserResponse.model_validate(user)
