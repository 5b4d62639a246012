"""
Database models for BrandPulse.

Uses SQLAlchemy ORM. Every tenant-owned table carries ``tenant_id`` pointing at
the tenant's ``businesses`` row.
"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date, Boolean, ForeignKey, Text, JSON,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import declarative_base, relationship

from brandpulse.clock import utcnow

Base = declarative_base()

PLATFORMS = ("instagram", "facebook", "twitter", "linkedin")
SENTIMENT_LABELS = ("positive", "negative", "neutral")
ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")


class User(Base):
    """User account model."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    business = relationship("Business", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class Business(Base):
    """Tenant: one business profile per user, kept in sync with Stripe."""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String)
    subscription_tier = Column(String)  # starter, professional, or NULL
    subscription_status = Column(String, default="inactive", nullable=False)
    stripe_customer_id = Column(String, index=True)
    stripe_subscription_id = Column(String)
    subscription_period_start = Column(DateTime)
    subscription_period_end = Column(DateTime)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="business")
    social_accounts = relationship("SocialAccount", back_populates="business", cascade="all, delete-orphan")

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription_status in ACTIVE_SUBSCRIPTION_STATUSES

    def __repr__(self):
        return f"<Business(id={self.id}, tier={self.subscription_tier}, status={self.subscription_status})>"


class SocialAccount(Base):
    """Connected social account. Deactivated rather than deleted on disconnect."""
    __tablename__ = "social_accounts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String, nullable=False)
    account_id = Column(String, nullable=False)
    account_name = Column(String)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)
    token_expires_at = Column(DateTime)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    business = relationship("Business", back_populates="social_accounts")

    def __repr__(self):
        return f"<SocialAccount(id={self.id}, platform={self.platform}, active={self.is_active})>"


class Mention(Base):
    """A captured social mention. Sentiment is attached once."""
    __tablename__ = "mentions"
    __table_args__ = (
        # Lookup index for the dedup check; not unique.
        Index("ix_mentions_dedup", "tenant_id", "social_account_id", "author", "posted_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    social_account_id = Column(Integer, ForeignKey("social_accounts.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    author = Column(String, nullable=False)
    author_handle = Column(String)
    post_url = Column(String)
    posted_at = Column(DateTime, nullable=False, index=True)
    sentiment_score = Column(Float)
    sentiment_label = Column(String)
    sentiment_reasoning = Column(Text)
    engagement_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    @property
    def is_scored(self) -> bool:
        return self.sentiment_score is not None

    def __repr__(self):
        return f"<Mention(id={self.id}, platform={self.platform}, score={self.sentiment_score})>"


class SentimentAnalyticsDay(Base):
    """Per-tenant daily sentiment aggregate, recomputed from mentions."""
    __tablename__ = "sentiment_analytics"
    __table_args__ = (UniqueConstraint("tenant_id", "date", name="uq_sentiment_analytics_tenant_date"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    positive_count = Column(Integer, default=0, nullable=False)
    negative_count = Column(Integer, default=0, nullable=False)
    neutral_count = Column(Integer, default=0, nullable=False)
    average_score = Column(Float, default=0.0, nullable=False)
    total_mentions = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<SentimentAnalyticsDay(tenant={self.tenant_id}, date={self.date}, total={self.total_mentions})>"


class GeneratedPost(Base):
    """AI-written draft post."""
    __tablename__ = "generated_posts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    hashtags = Column(JSON, default=list, nullable=False)
    cta = Column(Text)
    image_prompt = Column(Text)
    best_time_to_post = Column(String, default="afternoon")
    estimated_engagement = Column(String, default="medium")
    status = Column(String, default="draft", nullable=False)  # draft, scheduled, published
    scheduled_post_id = Column(Integer, ForeignKey("scheduled_posts.id", ondelete="SET NULL"))
    generated_at = Column(DateTime, default=utcnow, index=True)

    def __repr__(self):
        return f"<GeneratedPost(id={self.id}, platform={self.platform}, status={self.status})>"


class ScheduledPost(Base):
    """Future-dated post against a connected account."""
    __tablename__ = "scheduled_posts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    social_account_id = Column(Integer, ForeignKey("social_accounts.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    hashtags = Column(JSON, default=list, nullable=False)
    image_url = Column(String)
    scheduled_time = Column(DateTime, nullable=False, index=True)
    status = Column(String, default="scheduled", nullable=False)  # scheduled, published, failed, cancelled
    published_at = Column(DateTime)
    error_message = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ScheduledPost(id={self.id}, platform={self.platform}, status={self.status})>"


class ApiUsage(Base):
    """Monthly usage bucket for content generation."""
    __tablename__ = "api_usage"
    __table_args__ = (UniqueConstraint("tenant_id", "period_start", name="uq_api_usage_tenant_period"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    period_start = Column(Date, nullable=False)
    posts_generated = Column(Integer, default=0, nullable=False)
    api_calls = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ApiUsage(tenant={self.tenant_id}, period={self.period_start}, posts={self.posts_generated})>"


class PaymentHistory(Base):
    """Invoice outcomes reported by Stripe."""
    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("businesses.id", ondelete="SET NULL"), index=True)
    stripe_customer_id = Column(String, index=True)
    stripe_invoice_id = Column(String)
    amount = Column(Integer, default=0, nullable=False)
    currency = Column(String)
    status = Column(String, nullable=False)  # succeeded, failed
    paid_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<PaymentHistory(invoice={self.stripe_invoice_id}, status={self.status})>"
