import logging
from urllib.parse import quote

import stripe
from starlette.concurrency import run_in_threadpool

from picmarket.core.config import settings
from picmarket.core.errors import CheckoutCreationFailed, ItemNotApproved, NotFound
from picmarket.models.item import ApprovalState, Item
from picmarket.models.user import Identity

logger = logging.getLogger(__name__)

PER_ITEM = "per_item"
UNLIMITED = "unlimited"


class PricingPolicy:
    """Decides what a checkout charges for a given item."""

    def __init__(self, model: str, item_price: int, unlimited_price: int, currency: str):
        if model not in (PER_ITEM, UNLIMITED):
            raise ValueError(f"Unknown pricing model: {model}")
        self.model = model
        self.item_price = item_price
        self.unlimited_price = unlimited_price
        self.currency = currency

    @classmethod
    def from_settings(cls):
        return cls(
            settings.PRICING_MODEL,
            settings.ITEM_PRICE_CENTS,
            settings.UNLIMITED_PRICE_CENTS,
            settings.CURRENCY
        )

    def line_item(self, item: Item) -> dict:
        if self.model == UNLIMITED:
            product_data = {
                "name": "Unlimited access",
                "description": "Download every image in the gallery",
            }
            amount = self.unlimited_price
        else:
            product_data = {
                "name": f"Image: {item.name}",
                "description": "High-quality image download",
            }
            amount = self.item_price

        return {
            "price_data": {
                "currency": self.currency,
                "product_data": product_data,
                "unit_amount": amount,
            },
            "quantity": 1,
        }


def build_redirect_urls(origin: str, item_id: str):
    origin = origin.rstrip('/')
    success_url = f"{origin}/dashboard?payment=success&image={quote(item_id, safe='')}"
    cancel_url = f"{origin}/dashboard?payment=cancelled"
    return success_url, cancel_url


async def create_checkout_session(
    db,
    identity: Identity,
    item_id: str,
    origin: str,
    item_url: str = None,
    pricing: PricingPolicy = None
) -> dict:
    item_doc = await db.items.find_one({"id": item_id})
    if not item_doc:
        raise NotFound("Item not found")
    item = Item(**item_doc)

    if item.approval_state != ApprovalState.approved:
        logger.warning(f"Checkout refused for unapproved item {item_id} (user {identity.uid})")
        raise ItemNotApproved()

    pricing = pricing or PricingPolicy.from_settings()
    success_url, cancel_url = build_redirect_urls(origin, item.id)

    try:
        session = await run_in_threadpool(
            stripe.checkout.Session.create,
            api_key=settings.STRIPE_SECRET_KEY.strip(),
            payment_method_types=["card"],
            line_items=[pricing.line_item(item)],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={
                "userId": identity.uid,
                "itemId": item.id,
                "itemUrl": item_url or item.url,
                "pricingModel": pricing.model,
            },
        )
    except stripe.StripeError as e:
        logger.error(f"Checkout session error for user {identity.uid}, item {item_id}: {str(e)}")
        raise CheckoutCreationFailed(f"Unable to create checkout session: {str(e)}") from e

    logger.info(f"Checkout session {session.id} created for user {identity.uid}, item {item.id}")
    return {"sessionId": session.id, "url": session.url}
