"""
Post scheduling.

Life cycle of a scheduled post::

    scheduled -> published   (publisher reports success)
    scheduled -> failed      (publisher reports failure)
    scheduled -> cancelled   (user cancels; the row is kept)

The tier capacity check counts pending rows and inserts afterwards without a
lock, so concurrent requests for one tenant can exceed the cap.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from brandpulse.clock import as_naive_utc, utcnow
from brandpulse.errors import AccessDenied, NotFound, SchedulingLimitReached, ValidationError
from brandpulse.models import ScheduledPost
from brandpulse.services.types import Platform
from brandpulse.storage.tenant_store import TenantStore
from brandpulse.tiers import scheduling_limit

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("content", "hashtags", "scheduled_time", "image_url")


class ScheduleRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    post_id: Optional[int] = None
    content: Optional[str] = None
    platform: Platform
    scheduled_time: datetime
    hashtags: Optional[List[str]] = None
    image_url: Optional[str] = None


class ScheduleUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: Optional[str] = None
    hashtags: Optional[List[str]] = None
    scheduled_time: Optional[datetime] = None
    image_url: Optional[str] = None


def schedule_post(store: TenantStore, request: ScheduleRequest, now: Optional[datetime] = None) -> ScheduledPost:
    """
    Schedule a post on the tenant's connected account for ``request.platform``.

    Raises:
        ValidationError: no content, no active account, time not in the future,
            or the generated post is no longer a draft
        AccessDenied: subscription is not active
        NotFound: no business profile, or unknown generated post
        SchedulingLimitReached: the tier's pending-post cap is reached
    """
    now = now or utcnow()

    if not request.content and request.post_id is None:
        raise ValidationError("Either post_id or content is required")

    business = store.get_business()
    if business is None:
        raise NotFound("No business profile found")

    if not business.has_active_subscription:
        raise AccessDenied("Active subscription required")

    account = store.find_active_account(request.platform)
    if account is None:
        raise ValidationError(
            f"No active {request.platform} account connected",
            details="Please connect your social media account first",
        )

    scheduled_time = as_naive_utc(request.scheduled_time)
    if scheduled_time <= now:
        raise ValidationError("Scheduled time must be in the future")

    content = request.content
    hashtags = request.hashtags or []
    generated = None
    if request.post_id is not None:
        generated = store.get_generated_post(request.post_id)
        if generated is None:
            raise NotFound("Generated post not found")
        if generated.status != "draft":
            raise ValidationError(f"Cannot schedule a {generated.status} post")
        content = generated.content
        hashtags = list(generated.hashtags or [])

    scheduled_count = store.count_scheduled()
    limit = scheduling_limit(business.subscription_tier)
    if scheduled_count >= limit:
        logger.info(f"Scheduling limit reached for tenant {store.tenant_id}: {scheduled_count}/{limit}")
        raise SchedulingLimitReached(
            "Scheduling limit reached",
            scheduled=scheduled_count,
            limit=limit,
            tier=business.subscription_tier,
        )

    post = store.add_scheduled(
        social_account_id=account.id,
        platform=request.platform,
        content=content,
        hashtags=hashtags,
        image_url=request.image_url,
        scheduled_time=scheduled_time,
        status="scheduled",
        created_at=now,
    )

    if generated is not None:
        generated.status = "scheduled"
        generated.scheduled_post_id = post.id

    store.commit()
    logger.info(f"Scheduled post {post.id} on {request.platform} for {scheduled_time.isoformat()}")
    return post


def list_scheduled(store: TenantStore, status: str = "scheduled", platform: Optional[str] = None,
                   limit: int = 50) -> List[ScheduledPost]:
    return store.list_scheduled(
        status=None if status == "all" else status,
        platform=platform,
        limit=limit,
    )


def update_scheduled(store: TenantStore, post_id: int, changes: ScheduleUpdate,
                     now: Optional[datetime] = None) -> ScheduledPost:
    now = now or utcnow()
    post = store.get_scheduled(post_id)
    if post is None:
        raise NotFound("Scheduled post not found")

    if post.status != "scheduled":
        raise ValidationError(f"Cannot update a {post.status} post")

    updates = changes.model_dump(exclude_unset=True)
    if "scheduled_time" in updates:
        if updates["scheduled_time"] is None:
            raise ValidationError("scheduled_time cannot be cleared")
        updates["scheduled_time"] = as_naive_utc(updates["scheduled_time"])
        if updates["scheduled_time"] <= now:
            raise ValidationError("Scheduled time must be in the future")
    if "content" in updates and not updates["content"]:
        raise ValidationError("content cannot be empty")
    if "hashtags" in updates and updates["hashtags"] is None:
        updates["hashtags"] = []

    for key in EDITABLE_FIELDS:
        if key in updates:
            setattr(post, key, updates[key])

    store.commit()
    return post


def cancel_scheduled(store: TenantStore, post_id: int) -> ScheduledPost:
    post = store.get_scheduled(post_id)
    if post is None:
        raise NotFound("Scheduled post not found")

    if post.status == "cancelled":
        return post
    if post.status != "scheduled":
        raise ValidationError(f"Cannot cancel a {post.status} post")

    post.status = "cancelled"
    store.commit()
    logger.info(f"Cancelled scheduled post {post.id}")
    return post


def record_publish_outcome(store: TenantStore, post_id: int, success: bool,
                           error_message: Optional[str] = None, now: Optional[datetime] = None) -> ScheduledPost:
    """Apply the publisher's result to a pending post."""
    post = store.get_scheduled(post_id)
    if post is None:
        raise NotFound("Scheduled post not found")

    if post.status != "scheduled":
        raise ValidationError(f"Cannot publish a {post.status} post")

    if success:
        post.status = "published"
        post.published_at = now or utcnow()
        post.error_message = None
        generated = store.find_generated_for_scheduled(post.id)
        if generated is not None:
            generated.status = "published"
    else:
        post.status = "failed"
        post.error_message = error_message or "Publishing failed"

    store.commit()
    return post


def serialize_scheduled(post: ScheduledPost) -> Dict:
    return {
        "id": post.id,
        "social_account_id": post.social_account_id,
        "platform": post.platform,
        "content": post.content,
        "hashtags": post.hashtags or [],
        "image_url": post.image_url,
        "scheduled_time": post.scheduled_time.isoformat(),
        "status": post.status,
        "published_at": post.published_at.isoformat() if post.published_at else None,
        "error_message": post.error_message,
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }
