"""
AI content generation endpoints.
"""

import logging
from fastapi import APIRouter, Depends, Query

from brandpulse.orchestration.generation import generate_posts, list_generated, serialize_generated
from brandpulse.routers.dependencies import get_generator, get_tenant_store
from brandpulse.services.content_generator import ContentGenerator, GenerationRequest
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/content", tags=["content"])


@router.post("/generate")
def generate(
    body: GenerationRequest,
    store: TenantStore = Depends(get_tenant_store),
    generator: ContentGenerator = Depends(get_generator),
):
    """Generate draft posts within the tenant's monthly quota."""
    result = generate_posts(store, generator, body)
    return {"success": True, **result}


@router.get("/posts")
def posts(
    status: str = Query("all", pattern="^(all|draft|scheduled|published)$"),
    limit: int = Query(50, ge=1, le=200),
    store: TenantStore = Depends(get_tenant_store),
):
    return {"posts": [serialize_generated(p) for p in list_generated(store, status=status, limit=limit)]}
