"""
Tenant-scoped data access.

A ``TenantStore`` is built per request from the authenticated business. Every
query it issues is filtered on that tenant, so callers never pass a tenant id
themselves. Writes are flushed; committing is left to the caller.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from brandpulse.clock import utcnow
from brandpulse.models import (
    ApiUsage, Business, GeneratedPost, Mention, ScheduledPost, SentimentAnalyticsDay, SocialAccount,
)
from brandpulse.services.types import FetchedMention, SentimentResult

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TenantStore:

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    # Business

    def get_business(self) -> Business:
        return self.db.get(Business, self.tenant_id)

    # Social accounts

    def get_account(self, account_id: int) -> Optional[SocialAccount]:
        return self.db.scalars(
            select(SocialAccount).where(
                SocialAccount.tenant_id == self.tenant_id,
                SocialAccount.id == account_id,
            )
        ).first()

    def find_active_account(self, platform: str) -> Optional[SocialAccount]:
        return self.db.scalars(
            select(SocialAccount).where(
                SocialAccount.tenant_id == self.tenant_id,
                SocialAccount.platform == platform,
                SocialAccount.is_active.is_(True),
            ).order_by(SocialAccount.id)
        ).first()

    def list_accounts(self, active_only: bool = True) -> List[SocialAccount]:
        query = select(SocialAccount).where(SocialAccount.tenant_id == self.tenant_id)
        if active_only:
            query = query.where(SocialAccount.is_active.is_(True))
        return list(self.db.scalars(query.order_by(SocialAccount.id)))

    def add_account(self, **fields) -> SocialAccount:
        account = SocialAccount(tenant_id=self.tenant_id, **fields)
        self.db.add(account)
        self.db.flush()
        return account

    # Mentions

    def get_mention(self, mention_id: int) -> Optional[Mention]:
        return self.db.scalars(
            select(Mention).where(Mention.tenant_id == self.tenant_id, Mention.id == mention_id)
        ).first()

    def find_duplicate_mention(self, social_account_id: int, content: str, author: str,
                               posted_at: datetime) -> Optional[Mention]:
        return self.db.scalars(
            select(Mention).where(
                Mention.tenant_id == self.tenant_id,
                Mention.social_account_id == social_account_id,
                Mention.content == content,
                Mention.author == author,
                Mention.posted_at == posted_at,
            )
        ).first()

    def add_mention(self, account: SocialAccount, fetched: FetchedMention) -> Mention:
        mention = Mention(
            tenant_id=self.tenant_id,
            social_account_id=account.id,
            platform=account.platform,
            content=fetched.content,
            author=fetched.author,
            author_handle=fetched.author_handle,
            post_url=fetched.post_url,
            posted_at=fetched.posted_at,
            engagement_count=fetched.engagement_count or 0,
            created_at=utcnow(),
        )
        self.db.add(mention)
        self.db.flush()
        return mention

    def latest_mention(self, social_account_id: int) -> Optional[Mention]:
        return self.db.scalars(
            select(Mention).where(
                Mention.tenant_id == self.tenant_id,
                Mention.social_account_id == social_account_id,
            ).order_by(Mention.created_at.desc(), Mention.id.desc()).limit(1)
        ).first()

    def list_unscored(self, limit: int) -> List[Mention]:
        return list(self.db.scalars(
            select(Mention).where(
                Mention.tenant_id == self.tenant_id,
                Mention.sentiment_score.is_(None),
            ).order_by(Mention.created_at, Mention.id).limit(limit)
        ))

    def list_mentions(self, limit: int = 50, offset: int = 0, label: Optional[str] = None,
                      platform: Optional[str] = None) -> List[Mention]:
        query = select(Mention).where(Mention.tenant_id == self.tenant_id)
        if label:
            query = query.where(Mention.sentiment_label == label)
        if platform:
            query = query.where(Mention.platform == platform)
        query = query.order_by(Mention.posted_at.desc(), Mention.id.desc()).limit(limit).offset(offset)
        return list(self.db.scalars(query))

    def count_mentions(self, scored: Optional[bool] = None, label: Optional[str] = None,
                       platform: Optional[str] = None) -> int:
        query = select(func.count(Mention.id)).where(Mention.tenant_id == self.tenant_id)
        if label:
            query = query.where(Mention.sentiment_label == label)
        if platform:
            query = query.where(Mention.platform == platform)
        if scored is True:
            query = query.where(Mention.sentiment_score.is_not(None))
        elif scored is False:
            query = query.where(Mention.sentiment_score.is_(None))
        return self.db.scalar(query) or 0

    def attach_sentiment(self, mention: Mention, result: SentimentResult) -> Mention:
        mention.sentiment_score = result.score
        mention.sentiment_label = result.label
        mention.sentiment_reasoning = result.reasoning
        self.db.flush()
        return mention

    def scored_mentions_on(self, day: date) -> List[Mention]:
        start = datetime.combine(day, datetime.min.time())
        return list(self.db.scalars(
            select(Mention).where(
                Mention.tenant_id == self.tenant_id,
                Mention.sentiment_score.is_not(None),
                Mention.posted_at >= start,
                Mention.posted_at < start + timedelta(days=1),
            )
        ))

    # Daily analytics

    def upsert_analytics_day(self, day: date, values: Dict) -> None:
        """Insert the (tenant, day) row or overwrite every aggregate field."""
        row = {"tenant_id": self.tenant_id, "date": day, "updated_at": utcnow(), **values}
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is None:
            existing = self.get_analytics_day(day)
            if existing is None:
                self.db.add(SentimentAnalyticsDay(**row))
            else:
                for key, value in row.items():
                    setattr(existing, key, value)
            self.db.flush()
            return

        stmt = insert(SentimentAnalyticsDay).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id", "date"],
            set_={k: stmt.excluded[k] for k in row if k not in ("tenant_id", "date")},
        )
        self.db.execute(stmt)
        # The ORM identity map may hold a stale copy of the row
        self.db.expire_all()

    def get_analytics_day(self, day: date) -> Optional[SentimentAnalyticsDay]:
        return self.db.scalars(
            select(SentimentAnalyticsDay).where(
                SentimentAnalyticsDay.tenant_id == self.tenant_id,
                SentimentAnalyticsDay.date == day,
            )
        ).first()

    def list_analytics(self, since: date) -> List[SentimentAnalyticsDay]:
        return list(self.db.scalars(
            select(SentimentAnalyticsDay).where(
                SentimentAnalyticsDay.tenant_id == self.tenant_id,
                SentimentAnalyticsDay.date >= since,
            ).order_by(SentimentAnalyticsDay.date)
        ))

    # Usage

    def get_usage(self, period_start: date) -> Optional[ApiUsage]:
        return self.db.scalars(
            select(ApiUsage).where(
                ApiUsage.tenant_id == self.tenant_id,
                ApiUsage.period_start == period_start,
            )
        ).first()

    def add_usage(self, period_start: date, posts_generated: int, api_calls: int = 1) -> ApiUsage:
        usage = self.get_usage(period_start)
        if usage is None:
            usage = ApiUsage(tenant_id=self.tenant_id, period_start=period_start,
                             posts_generated=0, api_calls=0)
            self.db.add(usage)
        usage.posts_generated += posts_generated
        usage.api_calls += api_calls
        self.db.flush()
        return usage

    # Generated posts

    def add_generated_posts(self, posts: Iterable[GeneratedPost]) -> List[GeneratedPost]:
        saved = []
        for post in posts:
            post.tenant_id = self.tenant_id
            self.db.add(post)
            saved.append(post)
        self.db.flush()
        return saved

    def get_generated_post(self, post_id: int) -> Optional[GeneratedPost]:
        return self.db.scalars(
            select(GeneratedPost).where(GeneratedPost.tenant_id == self.tenant_id, GeneratedPost.id == post_id)
        ).first()

    def find_generated_for_scheduled(self, scheduled_post_id: int) -> Optional[GeneratedPost]:
        return self.db.scalars(
            select(GeneratedPost).where(
                GeneratedPost.tenant_id == self.tenant_id,
                GeneratedPost.scheduled_post_id == scheduled_post_id,
            )
        ).first()

    def list_generated(self, status: Optional[str] = None, limit: int = 50) -> List[GeneratedPost]:
        query = select(GeneratedPost).where(GeneratedPost.tenant_id == self.tenant_id)
        if status:
            query = query.where(GeneratedPost.status == status)
        return list(self.db.scalars(
            query.order_by(GeneratedPost.generated_at.desc(), GeneratedPost.id.desc()).limit(limit)
        ))

    # Scheduled posts

    def count_scheduled(self, status: str = "scheduled") -> int:
        return self.db.scalar(
            select(func.count(ScheduledPost.id)).where(
                ScheduledPost.tenant_id == self.tenant_id,
                ScheduledPost.status == status,
            )
        ) or 0

    def add_scheduled(self, **fields) -> ScheduledPost:
        post = ScheduledPost(tenant_id=self.tenant_id, **fields)
        self.db.add(post)
        self.db.flush()
        return post

    def get_scheduled(self, post_id: int) -> Optional[ScheduledPost]:
        return self.db.scalars(
            select(ScheduledPost).where(ScheduledPost.tenant_id == self.tenant_id, ScheduledPost.id == post_id)
        ).first()

    def list_scheduled(self, status: Optional[str] = None, platform: Optional[str] = None,
                       limit: int = 50) -> List[ScheduledPost]:
        query = select(ScheduledPost).where(ScheduledPost.tenant_id == self.tenant_id)
        if status:
            query = query.where(ScheduledPost.status == status)
        if platform:
            query = query.where(ScheduledPost.platform == platform)
        return list(self.db.scalars(
            query.order_by(ScheduledPost.scheduled_time, ScheduledPost.id).limit(limit)
        ))
