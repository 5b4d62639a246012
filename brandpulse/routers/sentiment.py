"""
Sentiment analysis and analytics endpoints.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from brandpulse.config import Settings, get_settings
from brandpulse.errors import ValidationError
from brandpulse.orchestration.analysis import PacingPolicy, SentimentAnalyzer, analysis_status
from brandpulse.orchestration.analytics import list_days, sentiment_summary, serialize_day
from brandpulse.routers.dependencies import get_classifier, get_pacing, get_tenant_store
from brandpulse.services.sentiment_client import SentimentClassifier
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sentiment", tags=["sentiment"])


class AnalyzeRequest(BaseModel):
    """
    Exactly one mode per request:

    - ``mention_ids``: score those mentions
    - ``content``: score an ad hoc string without storing it
    - neither: score the next ``batch_size`` unscored mentions
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mention_ids: Optional[List[int]] = None
    content: Optional[str] = None
    batch_size: Optional[int] = None


@router.post("/analyze")
def analyze(
    body: AnalyzeRequest,
    store: TenantStore = Depends(get_tenant_store),
    classifier: SentimentClassifier = Depends(get_classifier),
    pacing: PacingPolicy = Depends(get_pacing),
    settings: Settings = Depends(get_settings),
):
    if body.mention_ids and body.content is not None:
        raise ValidationError("Provide either mentionIds or content, not both")

    analyzer = SentimentAnalyzer(store, classifier, pacing)

    if body.content is not None:
        result = analyzer.analyze_text(body.content)
        return {"success": True, "sentiment": result.model_dump()}

    if body.mention_ids:
        report = analyzer.analyze_ids(body.mention_ids)
    else:
        report = analyzer.analyze_unscored(body.batch_size or settings.analysis_default_batch_size)

    logger.info(f"Sentiment batch for tenant {store.tenant_id}: "
                f"{report.analyzed} analyzed, {report.cached} cached, {report.failed} failed")
    return {"success": True, **report.to_dict()}


@router.get("/status")
def status(store: TenantStore = Depends(get_tenant_store)):
    return analysis_status(store)


@router.get("/analytics")
def analytics(days: int = Query(30, ge=1, le=365), store: TenantStore = Depends(get_tenant_store)):
    rows = list_days(store, days=days)
    return {
        "days": [serialize_day(r) for r in rows],
        "summary": sentiment_summary(rows),
    }
