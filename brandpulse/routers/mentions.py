"""
Mention ingestion and listing endpoints.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from brandpulse.models import Mention
from brandpulse.orchestration.ingestion import ingest_mentions, last_sync
from brandpulse.routers.dependencies import get_sources, get_tenant_store
from brandpulse.services.mention_sources import SourceRegistry
from brandpulse.services.types import Platform, SentimentLabel
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/mentions", tags=["mentions"])


class IngestRequest(BaseModel):
    """Ingest payload. Accepts camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    social_account_id: int
    platform: Optional[Platform] = None
    force_refresh: bool = False


def serialize_mention(mention: Mention) -> dict:
    return {
        "id": mention.id,
        "social_account_id": mention.social_account_id,
        "platform": mention.platform,
        "content": mention.content,
        "author": mention.author,
        "author_handle": mention.author_handle,
        "post_url": mention.post_url,
        "posted_at": mention.posted_at.isoformat(),
        "sentiment_score": mention.sentiment_score,
        "sentiment_label": mention.sentiment_label,
        "sentiment_reasoning": mention.sentiment_reasoning,
        "engagement_count": mention.engagement_count,
        "created_at": mention.created_at.isoformat() if mention.created_at else None,
    }


@router.post("/ingest")
def ingest(
    body: IngestRequest,
    store: TenantStore = Depends(get_tenant_store),
    sources: SourceRegistry = Depends(get_sources),
):
    """Fetch the account's mentions from its platform and store new ones."""
    result = ingest_mentions(
        store,
        sources,
        body.social_account_id,
        force_refresh=body.force_refresh,
        platform=body.platform,
    )
    return {
        "success": True,
        "fetched": result.fetched,
        "inserted": result.inserted,
        "skipped": result.skipped,
        "mentions": [serialize_mention(m) for m in result.mentions],
        "message": result.message,
    }


@router.get("/last-sync")
def get_last_sync(
    social_account_id: int = Query(..., alias="socialAccountId"),
    store: TenantStore = Depends(get_tenant_store),
):
    return last_sync(store, social_account_id)


@router.get("")
def list_mentions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    label: Optional[SentimentLabel] = Query(None),
    platform: Optional[Platform] = Query(None),
    store: TenantStore = Depends(get_tenant_store),
):
    mentions = store.list_mentions(limit=limit, offset=offset, label=label, platform=platform)
    return {
        "mentions": [serialize_mention(m) for m in mentions],
        "total": store.count_mentions(label=label, platform=platform),
    }
