"""
Stripe subscription sync.

Applies verified webhook events to the tenant's business row. Event payloads
are read with item access, so both ``stripe.StripeObject`` instances and plain
dicts work.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.orm import Session

from brandpulse.clock import utcnow
from brandpulse.config import Settings
from brandpulse.models import Business, PaymentHistory

logger = logging.getLogger(__name__)

def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _first_item(subscription) -> Optional[Any]:
    items = subscription.get("items") or {}
    data = items.get("data") or []
    return data[0] if data else None


class BillingSync:

    def __init__(self, db: Session, settings: Settings,
                 subscription_lookup: Optional[Callable[[str], Any]] = None):
        self.db = db
        self.settings = settings
        self._lookup = subscription_lookup or self._retrieve_subscription

    def _retrieve_subscription(self, subscription_id: str):
        return stripe.Subscription.retrieve(subscription_id, api_key=self.settings.stripe_secret_key)

    def handle(self, event) -> bool:
        """
        Apply one webhook event.

        Returns:
            True if the event type is handled, False if it was ignored
        """
        event_type = event["type"]
        payload = event["data"]["object"]
        logger.info(f"Processing Stripe webhook: {event_type}")

        if event_type == "checkout.session.completed":
            self._checkout_completed(payload)
        elif event_type == "customer.subscription.updated":
            self._subscription_updated(payload)
        elif event_type == "customer.subscription.deleted":
            self._subscription_deleted(payload)
        elif event_type == "invoice.payment_succeeded":
            self._payment_succeeded(payload)
        elif event_type == "invoice.payment_failed":
            self._payment_failed(payload)
        else:
            logger.info(f"Unhandled webhook event type: {event_type}")
            return False

        self.db.commit()
        return True

    def tier_for(self, subscription) -> str:
        item = _first_item(subscription)
        price_id = item["price"]["id"] if item else None
        professional = self.settings.stripe_price_professional_monthly
        if professional and price_id == professional:
            return "professional"
        return "starter"

    def period_of(self, subscription):
        start = subscription.get("current_period_start")
        end = subscription.get("current_period_end")
        if start is None or end is None:
            # Newer API versions report the period per subscription item
            item = _first_item(subscription) or {}
            start = start if start is not None else item.get("current_period_start")
            end = end if end is not None else item.get("current_period_end")
        return _from_epoch(start), _from_epoch(end)

    def _business_for_customer(self, customer_id: Optional[str]) -> Optional[Business]:
        if not customer_id:
            return None
        return self.db.scalars(
            select(Business).where(Business.stripe_customer_id == customer_id)
        ).first()

    def _apply_subscription(self, business: Business, subscription):
        business.subscription_status = subscription["status"]
        business.subscription_tier = self.tier_for(subscription)
        business.subscription_period_start, business.subscription_period_end = self.period_of(subscription)
        business.updated_at = utcnow()

    def _checkout_completed(self, session):
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        if not user_id:
            logger.error("No user_id in checkout session metadata")
            return

        subscription_id = session.get("subscription")
        subscription = self._lookup(subscription_id)

        business = self.db.scalars(
            select(Business).where(Business.user_id == int(user_id))
        ).first()
        if business is None:
            business = Business(user_id=int(user_id), created_at=utcnow())
            self.db.add(business)

        business.stripe_customer_id = session.get("customer")
        business.stripe_subscription_id = subscription_id
        self._apply_subscription(business, subscription)
        logger.info(f"Checkout completed for user {user_id}, tier: {business.subscription_tier}")

    def _subscription_updated(self, subscription):
        customer_id = subscription.get("customer")
        business = self._business_for_customer(customer_id)
        if business is None:
            logger.warning(f"Subscription update for unknown customer {customer_id}")
            return
        self._apply_subscription(business, subscription)
        logger.info(f"Subscription updated for customer {customer_id}, status: {business.subscription_status}")

    def _subscription_deleted(self, subscription):
        customer_id = subscription.get("customer")
        business = self._business_for_customer(customer_id)
        if business is None:
            logger.warning(f"Subscription deletion for unknown customer {customer_id}")
            return
        business.subscription_status = "canceled"
        business.subscription_tier = None
        business.updated_at = utcnow()
        logger.info(f"Subscription cancelled for customer {customer_id}")

    def _record_payment(self, invoice, status: str, amount: int, paid_at: datetime):
        customer_id = invoice.get("customer")
        business = self._business_for_customer(customer_id)
        self.db.add(PaymentHistory(
            tenant_id=business.id if business else None,
            stripe_customer_id=customer_id,
            stripe_invoice_id=invoice.get("id"),
            amount=amount or 0,
            currency=invoice.get("currency"),
            status=status,
            paid_at=paid_at,
        ))
        return business

    def _payment_succeeded(self, invoice):
        transitions = invoice.get("status_transitions") or {}
        paid_at = _from_epoch(transitions.get("paid_at")) or utcnow()
        self._record_payment(invoice, "succeeded", invoice.get("amount_paid"), paid_at)
        logger.info(f"Payment succeeded for customer {invoice.get('customer')}, amount: {invoice.get('amount_paid')}")

    def _payment_failed(self, invoice):
        business = self._record_payment(invoice, "failed", invoice.get("amount_due"), utcnow())
        if business is not None:
            business.subscription_status = "past_due"
            business.updated_at = utcnow()
        logger.warning(f"Payment failed for customer {invoice.get('customer')}")


def verify_event(payload: bytes, signature: Optional[str], secret: str) -> Dict:
    """
    Verify a webhook body against its ``Stripe-Signature`` header.

    Raises:
        ValueError: malformed payload
        stripe.SignatureVerificationError: signature mismatch
    """
    return stripe.Webhook.construct_event(payload, signature, secret)
