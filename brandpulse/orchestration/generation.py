"""
Quota-gated content generation.

The quota check reads the month's usage and the increment writes it later, with
the LLM call in between; concurrent requests for one tenant can overshoot the
limit. Usage grows by the requested ``post_count`` even when the model returns
fewer posts.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from brandpulse.clock import utcnow
from brandpulse.errors import AccessDenied, NotFound, QuotaExceeded
from brandpulse.models import GeneratedPost
from brandpulse.services.content_generator import ContentGenerator, GenerationRequest
from brandpulse.storage.tenant_store import TenantStore
from brandpulse.tiers import generation_limit

logger = logging.getLogger(__name__)


def month_start(today: date) -> date:
    return today.replace(day=1)


def current_usage(store: TenantStore, today: Optional[date] = None) -> int:
    usage = store.get_usage(month_start(today or utcnow().date()))
    return usage.posts_generated if usage else 0


def generate_posts(store: TenantStore, generator: ContentGenerator, request: GenerationRequest,
                   today: Optional[date] = None) -> Dict:
    """
    Generate and store draft posts for the tenant.

    Returns:
        Dict with the saved posts and the updated usage figures

    Raises:
        NotFound: no business profile
        AccessDenied: subscription is not active
        QuotaExceeded: the request would exceed the monthly limit (no LLM call made)
        LLMUnavailable, GenerationParseError: upstream failures
    """
    today = today or utcnow().date()
    business = store.get_business()
    if business is None:
        raise NotFound("No business profile found")

    if not business.has_active_subscription:
        raise AccessDenied("Active subscription required")

    usage = current_usage(store, today)
    limit = generation_limit(business.subscription_tier)

    if usage + request.post_count > limit:
        logger.info(f"Generation quota reached for tenant {store.tenant_id}: {usage}/{limit}")
        raise QuotaExceeded(
            "Monthly post generation limit reached",
            usage=usage,
            limit=limit,
            tier=business.subscription_tier,
        )

    drafts = generator.generate(request)

    generated_at = utcnow()
    saved = store.add_generated_posts(
        GeneratedPost(
            platform=request.platform,
            content=draft.content,
            hashtags=list(draft.hashtags),
            cta=draft.cta,
            image_prompt=draft.imagePrompt,
            best_time_to_post=draft.bestTimeToPost,
            estimated_engagement=draft.estimatedEngagement,
            status="draft",
            generated_at=generated_at,
        )
        for draft in drafts
    )

    store.add_usage(month_start(today), posts_generated=request.post_count, api_calls=1)
    store.commit()

    new_usage = usage + request.post_count
    logger.info(f"Generated {len(saved)} posts for tenant {store.tenant_id} ({new_usage}/{limit})")
    return {
        "posts": [serialize_generated(p) for p in saved],
        "usage": {
            "current": new_usage,
            "limit": limit,
            "remaining": limit - new_usage,
        },
    }


def list_generated(store: TenantStore, status: str = "all", limit: int = 50) -> List[GeneratedPost]:
    return store.list_generated(status=None if status == "all" else status, limit=limit)


def serialize_generated(post: GeneratedPost) -> Dict:
    return {
        "id": post.id,
        "platform": post.platform,
        "content": post.content,
        "hashtags": post.hashtags or [],
        "cta": post.cta,
        "image_prompt": post.image_prompt,
        "best_time_to_post": post.best_time_to_post,
        "estimated_engagement": post.estimated_engagement,
        "status": post.status,
        "scheduled_post_id": post.scheduled_post_id,
        "generated_at": post.generated_at.isoformat() if post.generated_at else None,
    }
