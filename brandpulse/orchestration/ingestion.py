"""
Mention ingestion: fetch from a platform adapter, insert what is new.

The duplicate check and the insert are separate statements, so two concurrent
ingestions of the same account can both insert the same mention.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from brandpulse.clock import as_naive_utc, utcnow
from brandpulse.errors import AccountInactive, NotFound, TokenExpired, ValidationError
from brandpulse.models import Mention
from brandpulse.services.mention_sources import SourceRegistry
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    mentions: List[Mention] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.inserted:
            return f"Successfully ingested {self.inserted} new mentions"
        return "No new mentions found"


def ingest_mentions(
    store: TenantStore,
    sources: SourceRegistry,
    social_account_id: int,
    force_refresh: bool = False,
    platform: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IngestionResult:
    """
    Pull mentions for one connected account and store the new ones.

    Args:
        store: Tenant-scoped store
        sources: Platform adapter registry
        social_account_id: Account to ingest for
        force_refresh: Insert even when an identical mention already exists
        platform: Optional platform the caller expects the account to be on
        now: Clock override

    Returns:
        IngestionResult with fetched/inserted/skipped counts

    Raises:
        NotFound, ValidationError, AccountInactive, TokenExpired, UpstreamFetchError
    """
    now = now or utcnow()

    account = store.get_account(social_account_id)
    if account is None:
        raise NotFound("Social account not found or access denied")

    if platform and platform != account.platform:
        raise ValidationError(f"Social account is connected to {account.platform}, not {platform}")

    if not account.is_active:
        raise AccountInactive("Social account is not active")

    if account.token_expires_at and account.token_expires_at < now:
        raise TokenExpired("Access token has expired. Please reconnect the account.")

    source = sources.for_platform(account.platform)
    if source is None:
        raise ValidationError("Unsupported platform", platform=account.platform)

    # Materialize the whole fetch before writing anything
    fetched = list(source.fetch_mentions(account))
    result = IngestionResult(fetched=len(fetched))
    logger.info(f"Fetched {len(fetched)} mentions from {account.platform} for account {account.id}")

    for item in fetched:
        item.posted_at = as_naive_utc(item.posted_at)
        existing = store.find_duplicate_mention(account.id, item.content, item.author, item.posted_at)
        if existing is not None and not force_refresh:
            result.skipped += 1
            continue

        result.mentions.append(store.add_mention(account, item))
        result.inserted += 1

    store.commit()

    if result.inserted:
        logger.info(f"Queued {result.inserted} mentions for sentiment analysis")
    return result


def last_sync(store: TenantStore, social_account_id: int) -> dict:
    """Timestamps of the newest stored mention for an account."""
    if store.get_account(social_account_id) is None:
        raise NotFound("Social account not found or access denied")

    latest = store.latest_mention(social_account_id)
    return {
        "last_sync": latest.created_at.isoformat() if latest else None,
        "last_mention_date": latest.posted_at.isoformat() if latest else None,
    }
