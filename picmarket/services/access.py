import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from picmarket.core.config import settings
from picmarket.core.errors import (
    ItemNotPurchased,
    MissingIdentity,
    NoPaymentRecord,
    NotFound,
    NotPaid,
    PermissionDenied,
)
from picmarket.models.item import ApprovalState
from picmarket.models.user import Identity
from picmarket.services.payments import get_payment_record
from picmarket.services.storage import AssetStore

logger = logging.getLogger(__name__)


async def authorize_download(
    db,
    store: AssetStore,
    item_path: str,
    identity: Optional[Identity],
    claimed_user_id: Optional[str] = None,
    expires: Optional[int] = None
) -> str:
    """Return a fresh signed URL for ``item_path`` if the caller paid for it."""
    if identity is None:
        logger.warning("Download requested without identity")
        raise MissingIdentity()
    if claimed_user_id and claimed_user_id != identity.uid:
        logger.warning(f"Download for {item_path}: claimed user {claimed_user_id} does not match token")
        raise PermissionDenied("Access denied: User mismatch")

    record = await get_payment_record(db, identity.uid)
    if record is None:
        logger.warning(f"No payment record for {identity.uid}")
        raise NoPaymentRecord()
    if not record.has_paid:
        logger.warning(f"User {identity.uid} has not completed a payment")
        raise NotPaid()
    if item_path not in record.paid_images:
        # Unlimited access only reaches items that are for sale
        approved = record.unlimited_access and await db.items.find_one(
            {"id": item_path, "approval_state": ApprovalState.approved.value}
        )
        if not approved:
            logger.warning(f"Unauthorized image request: {item_path} by {identity.uid}")
            raise ItemNotPurchased()

    key = await run_in_threadpool(store.resolve, item_path)
    if key is None:
        logger.error(f"Image not found: {item_path}")
        raise NotFound("Image not found")

    url = await run_in_threadpool(store.signed_url, key, expires or settings.SIGNED_URL_EXPIRE_SECONDS)
    logger.info(f"Issued signed URL for {key} to {identity.uid}")
    return url
