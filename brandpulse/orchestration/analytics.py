"""
Daily sentiment analytics.

A day's row is always recomputed from scratch over every scored mention of the
tenant posted on that UTC date, then upserted. This keeps the row consistent
with the mentions regardless of update order, at the cost of a full re-scan of
the day on every update.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from brandpulse.clock import utcnow
from brandpulse.models import Mention, SentimentAnalyticsDay
from brandpulse.services.types import SentimentResult
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)


def compute_day(mentions: List[Mention]) -> Dict:
    scores = [m.sentiment_score for m in mentions]
    labels = [m.sentiment_label for m in mentions]
    total = len(scores)
    return {
        "positive_count": labels.count("positive"),
        "negative_count": labels.count("negative"),
        "neutral_count": labels.count("neutral"),
        "average_score": sum(scores) / total if total else 0.0,
        "total_mentions": total,
    }


def recompute_day(store: TenantStore, day: date) -> Dict:
    values = compute_day(store.scored_mentions_on(day))
    store.upsert_analytics_day(day, values)
    logger.debug(f"Recomputed analytics for tenant {store.tenant_id} on {day}: {values}")
    return values


def record_sentiment(store: TenantStore, mention: Mention, result: SentimentResult) -> Mention:
    """Attach sentiment to a mention and refresh its day's analytics row."""
    store.attach_sentiment(mention, result)
    recompute_day(store, mention.posted_at.date())
    store.commit()
    return mention


def list_days(store: TenantStore, days: int = 30, today: Optional[date] = None) -> List[SentimentAnalyticsDay]:
    today = today or utcnow().date()
    return store.list_analytics(today - timedelta(days=days))


def sentiment_summary(rows: List[SentimentAnalyticsDay]) -> Dict:
    """Dashboard summary over a run of daily rows."""
    total = sum(r.total_mentions for r in rows)
    positive = sum(r.positive_count for r in rows)
    negative = sum(r.negative_count for r in rows)
    neutral = sum(r.neutral_count for r in rows)
    return {
        "total_mentions": total,
        # Mean of daily averages, not of mentions
        "average_score": round(sum(r.average_score for r in rows) / len(rows), 2) if rows else 0.0,
        "positive_count": positive,
        "negative_count": negative,
        "neutral_count": neutral,
        "positive_percentage": round(positive / total * 100, 1) if total else 0.0,
    }


def serialize_day(row: SentimentAnalyticsDay) -> Dict:
    return {
        "date": row.date.isoformat(),
        "positive_count": row.positive_count,
        "negative_count": row.negative_count,
        "neutral_count": row.neutral_count,
        "average_score": row.average_score,
        "total_mentions": row.total_mentions,
    }
