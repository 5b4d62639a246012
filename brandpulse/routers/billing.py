"""
Stripe webhook endpoint.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
import stripe

from brandpulse.config import Settings, get_settings
from brandpulse.orchestration.billing import BillingSync, verify_event
from brandpulse.routers.dependencies import get_billing_sync

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    sync: BillingSync = Depends(get_billing_sync),
):
    """Verify and apply a Stripe event. Nothing is applied unless the signature checks out."""
    payload = await request.body()

    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No signature provided")

    if not settings.stripe_webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Webhook secret not configured")

    try:
        event = verify_event(payload, stripe_signature, settings.stripe_webhook_secret)
    except ValueError as e:
        logger.error(f"Invalid payload: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"Invalid signature: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        handled = sync.handle(event)
    except Exception as e:
        sync.db.rollback()
        logger.error(f"Webhook processing failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Webhook processing failed")

    return {"received": True, "handled": handled}
