from fastapi import APIRouter, Depends, Request, Query
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
import logging

from picmarket.core.errors import Internal, MarketplaceError
from picmarket.db.session import get_db
from picmarket.models.payment import CheckoutRequest, CheckoutSession
from picmarket.models.user import Identity
from picmarket.services.access import authorize_download
from picmarket.services.auth import decode_identity, get_current_identity, security
from picmarket.services.checkout import create_checkout_session
from picmarket.services.items import purchase_history
from picmarket.services.payments import get_payment_status
from picmarket.services.storage import get_storage
from picmarket.services.webhook import handle_provider_event

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/payments/checkout", response_model=CheckoutSession)
async def checkout(
    checkout_request: CheckoutRequest,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db)
):
    logger.info(f"Checkout session request from {identity.uid} for {checkout_request.itemId}")
    return await create_checkout_session(
        db,
        identity,
        item_id=checkout_request.itemId,
        origin=checkout_request.origin,
        item_url=checkout_request.itemUrl
    )


@router.post("/webhook/stripe")
async def stripe_webhook(request: Request, db=Depends(get_db)):
    # Signature verification needs the untouched request bytes
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    return await handle_provider_event(db, raw_body, signature)


@router.get("/payments/status")
async def check_payment_status(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return await get_payment_status(db, identity.uid)


@router.get("/my-purchases")
async def get_my_purchases(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return await purchase_history(db, identity)


@router.get("/download")
async def download_item(
    item_path: str = Query(..., alias="itemPath", min_length=1),
    token: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db=Depends(get_db),
    store=Depends(get_storage)
):
    """Redirect a paying user to a short-lived URL for the image.

    The bearer token may come from the Authorization header or, for plain
    browser links, the ``token`` query parameter.
    """
    try:
        raw_token = credentials.credentials if credentials else token
        identity = decode_identity(raw_token) if raw_token else None
        url = await authorize_download(db, store, item_path, identity, claimed_user_id=user_id)
    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception(f"Download of {item_path} failed: {str(e)}")
        raise Internal() from e

    return RedirectResponse(url, status_code=302)
