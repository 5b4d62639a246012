"""
Post scheduling endpoints.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from brandpulse.orchestration.scheduling import (
    ScheduleRequest, ScheduleUpdate,
    cancel_scheduled, list_scheduled, schedule_post, serialize_scheduled, update_scheduled,
)
from brandpulse.routers.dependencies import get_tenant_store
from brandpulse.services.types import Platform
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.post("", status_code=201)
def create(body: ScheduleRequest, store: TenantStore = Depends(get_tenant_store)):
    post = schedule_post(store, body)
    return {"success": True, "post": serialize_scheduled(post)}


@router.get("")
def index(
    status: str = Query("scheduled", pattern="^(all|scheduled|published|failed|cancelled)$"),
    platform: Optional[Platform] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    store: TenantStore = Depends(get_tenant_store),
):
    posts = list_scheduled(store, status=status, platform=platform, limit=limit)
    return {"posts": [serialize_scheduled(p) for p in posts]}


@router.patch("/{post_id}")
def update(post_id: int, body: ScheduleUpdate, store: TenantStore = Depends(get_tenant_store)):
    post = update_scheduled(store, post_id, body)
    return {"success": True, "post": serialize_scheduled(post)}


@router.delete("/{post_id}")
def cancel(post_id: int, store: TenantStore = Depends(get_tenant_store)):
    post = cancel_scheduled(store, post_id)
    return {"success": True, "post": serialize_scheduled(post)}
