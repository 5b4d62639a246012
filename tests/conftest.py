"""Shared fixtures: in-memory database, tenants, and fake LLM collaborators."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from brandpulse.config import Settings
from brandpulse.database import build_engine
from brandpulse.errors import ClassifierUnavailable
from brandpulse.models import Base, Business, SocialAccount, User
from brandpulse.services.types import FetchedMention, GeneratedPostDraft, SentimentResult
from brandpulse.storage.tenant_store import TenantStore


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        anthropic_api_key="test-key",
        anthropic_api_url="https://llm.test/v1/messages",
        instagram_graph_url="https://graph.instagram.test",
        facebook_graph_url="https://graph.facebook.test",
        x_api_url="https://x.test/2",
        linkedin_api_url="https://linkedin.test/rest",
        stripe_webhook_secret="whsec_test",
        stripe_price_professional_monthly="price_pro",
        database_url="sqlite://",
    )


@pytest.fixture
def make_business(db):
    """Factory for a user plus their business profile."""
    counter = {"n": 0}

    def _make(tier="starter", status="active", email=None):
        counter["n"] += 1
        user = User(email=email or f"owner{counter['n']}@example.com", password_hash="x")
        user.business = Business(
            name=f"Business {counter['n']}",
            subscription_tier=tier,
            subscription_status=status,
        )
        db.add(user)
        db.commit()
        return user.business

    return _make


@pytest.fixture
def business(make_business):
    return make_business()


@pytest.fixture
def store(db, business):
    return TenantStore(db, business.id)


@pytest.fixture
def make_account(db):
    def _make(business, platform="instagram", is_active=True, token_expires_at=None, account_id="acct-1"):
        account = SocialAccount(
            tenant_id=business.id,
            platform=platform,
            account_id=account_id,
            account_name=f"{platform} account",
            access_token="token-abc",
            is_active=is_active,
            token_expires_at=token_expires_at,
        )
        db.add(account)
        db.commit()
        return account

    return _make


@pytest.fixture
def account(make_account, business):
    return make_account(business)


@pytest.fixture
def add_mentions(store, account):
    """Insert ``count`` unscored mentions with increasing created_at."""
    def _add(count, posted_at=None, prefix="mention"):
        posted_at = posted_at or datetime(2024, 5, 1, 12, 0)
        created = []
        for i in range(count):
            mention = store.add_mention(account, FetchedMention(
                content=f"{prefix} {i}",
                author=f"author{i}",
                posted_at=posted_at + timedelta(minutes=i),
            ))
            mention.created_at = datetime(2024, 5, 1) + timedelta(seconds=len(created))
            created.append(mention)
        store.commit()
        return created

    return _add


class FakeClassifier:
    """Deterministic classifier: texts containing FAIL raise, others score by keyword."""

    def __init__(self):
        self.calls = []

    def classify(self, text):
        self.calls.append(text)
        if "FAIL" in text:
            raise ClassifierUnavailable("LLM API error: 500")
        if "love" in text:
            return SentimentResult(score=9, label="positive", reasoning="enthusiastic", confidence=0.9)
        if "hate" in text:
            return SentimentResult(score=1, label="negative", reasoning="hostile", confidence=0.9)
        return SentimentResult(score=5, label="neutral", reasoning="matter of fact", confidence=0.6)


class FakeGenerator:
    def __init__(self):
        self.calls = []

    def generate(self, request):
        self.calls.append(request)
        return [
            GeneratedPostDraft(content=f"Post {i + 1} for {request.industry}", hashtags=["#one", "#two"])
            for i in range(request.post_count)
        ]


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def score_mention(store):
    """Attach a sentiment directly, bypassing the classifier."""
    def _score(mention, score, label):
        return store.attach_sentiment(
            mention, SentimentResult(score=score, label=label, reasoning="r", confidence=1)
        )

    return _score


@pytest.fixture
def pacing():
    """A pacing policy that records its waits instead of sleeping."""
    from brandpulse.orchestration.analysis import PacingPolicy
    sleeps = []
    return PacingPolicy(delay_seconds=0.1, max_in_flight=1, sleep=sleeps.append), sleeps
