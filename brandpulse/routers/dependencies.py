"""
Request-scoped dependencies shared by the routers.

Collaborators (LLM clients, platform adapters, pacing) are provided here so
tests can swap them with ``app.dependency_overrides``.
"""

import logging
from typing import Iterator, Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from brandpulse.auth import verify_token
from brandpulse.config import Settings, get_settings
from brandpulse.database import get_db
from brandpulse.errors import NotFound, Unauthenticated
from brandpulse.models import Business, User
from brandpulse.orchestration.analysis import PacingPolicy
from brandpulse.orchestration.billing import BillingSync
from brandpulse.services.anthropic_client import AnthropicClient
from brandpulse.services.content_generator import ContentGenerator
from brandpulse.services.mention_sources import SourceRegistry, default_registry
from brandpulse.services.sentiment_client import SentimentClassifier
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Extract and verify current user from the bearer token."""
    if not authorization:
        raise Unauthenticated("Missing token")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Invalid authorization header")

    token_data = verify_token(token, settings=settings)
    if not token_data:
        raise Unauthenticated("Invalid token")

    user = db.get(User, token_data.user_id)
    if not user:
        raise Unauthenticated("User not found")

    return user


def get_current_business(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Business:
    business = db.scalars(select(Business).where(Business.user_id == user.id)).first()
    if business is None:
        raise NotFound("No business profile found")
    return business


def get_tenant_store(business: Business = Depends(get_current_business),
                     db: Session = Depends(get_db)) -> TenantStore:
    return TenantStore(db, business.id)


def get_llm(settings: Settings = Depends(get_settings)) -> Iterator[AnthropicClient]:
    llm = AnthropicClient(settings)
    try:
        yield llm
    finally:
        llm.close()


def get_classifier(llm: AnthropicClient = Depends(get_llm),
                   settings: Settings = Depends(get_settings)) -> SentimentClassifier:
    return SentimentClassifier(llm, max_tokens=settings.classifier_max_tokens)


def get_generator(llm: AnthropicClient = Depends(get_llm),
                  settings: Settings = Depends(get_settings)) -> ContentGenerator:
    return ContentGenerator(llm, max_tokens=settings.generator_max_tokens)


def get_sources(settings: Settings = Depends(get_settings)) -> Iterator[SourceRegistry]:
    registry = default_registry(settings)
    try:
        yield registry
    finally:
        registry.close()


def get_pacing(settings: Settings = Depends(get_settings)) -> PacingPolicy:
    return PacingPolicy.from_settings(settings)


def get_billing_sync(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> BillingSync:
    return BillingSync(db, settings)
