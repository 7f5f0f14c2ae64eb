"""Reconciles Stripe webhook notifications into payment records.

The webhook endpoint is public, so the signature check is the only thing
standing between the internet and the payment records. The body is verified
byte-for-byte before anything reads it.
"""
import logging
from typing import Optional

import stripe

from picmarket.core.config import settings
from picmarket.core.errors import InvalidEventMetadata, InvalidSignature
from picmarket.services.checkout import UNLIMITED
from picmarket.services.payments import record_completed_payment

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def stripe_to_dict(obj) -> dict:
    """Convert a Stripe object to a plain dict for safer access."""
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None) or getattr(obj, "to_dict_recursive", None)
    if callable(to_dict):
        return to_dict()
    return {}


def verify_event(raw_body: bytes, signature_header: Optional[str], secret: str) -> dict:
    """Check the Stripe signature over the exact bytes received, then parse."""
    if not signature_header:
        raise InvalidSignature("Missing Stripe signature header")
    if not secret:
        logger.error("Webhook secret is not configured")
        raise InvalidSignature("Webhook secret is not configured")

    try:
        event = stripe.Webhook.construct_event(raw_body, signature_header, secret.strip())
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Invalid Stripe webhook signature: {str(e)}")
        raise InvalidSignature(f"Webhook Error: {str(e)}") from e

    event = stripe_to_dict(event)
    if "type" not in event:
        raise InvalidSignature("Webhook Error: malformed payload")
    return event


def extract_checkout_metadata(session: dict):
    metadata = session.get("metadata") or {}
    user_id = metadata.get("userId")
    # Sessions created before items had ids carried the file name instead
    item_id = metadata.get("itemId") or metadata.get("imageName")
    if not user_id or not item_id:
        raise InvalidEventMetadata()
    return user_id, item_id, metadata.get("pricingModel") == UNLIMITED


async def handle_provider_event(db, raw_body: bytes, signature_header: Optional[str]) -> dict:
    event = verify_event(raw_body, signature_header, settings.STRIPE_WEBHOOK_SECRET)
    event_type = event["type"]
    logger.info(f"Webhook event {event.get('id')}: {event_type}")

    if event_type != CHECKOUT_COMPLETED:
        return {"received": True}

    session = (event.get("data") or {}).get("object") or {}
    try:
        user_id, item_id, unlimited = extract_checkout_metadata(session)
    except InvalidEventMetadata:
        logger.error(f"Checkout session {session.get('id')} has no userId/itemId metadata")
        raise

    record = await record_completed_payment(
        db,
        user_id=user_id,
        item_id=item_id,
        session_id=session.get("id"),
        unlimited=unlimited
    )
    logger.info(
        f"Payment recorded for user {user_id}, item {item_id} "
        f"({len(record.paid_images)} purchased)"
    )
    return {"received": True}
