from datetime import datetime
from typing import Optional
import logging

from pymongo.errors import PyMongoError

from picmarket.core.errors import UpstreamFailure
from picmarket.models.payment import PaymentRecord

logger = logging.getLogger(__name__)


async def get_payment_record(db, user_id: str) -> Optional[PaymentRecord]:
    record = await db.payments.find_one({"user_id": user_id})
    if not record:
        return None
    return PaymentRecord(**record)


async def get_payment_status(db, user_id: str) -> dict:
    """Current payment state for a user, or empty defaults if none exists."""
    record = await get_payment_record(db, user_id)
    if record is None:
        return {"hasPaid": False, "paidImages": [], "paidAt": None}
    return record.status()


async def record_completed_payment(
    db,
    user_id: str,
    item_id: str,
    session_id: str,
    unlimited: bool = False
) -> PaymentRecord:
    """Merge a completed checkout into the user's payment record.

    A single atomic upsert: ``$addToSet`` keeps the purchased set free of
    duplicates so redelivered events change nothing, and fields not named
    here survive on an existing record.
    """
    update_data = {
        "has_paid": True,
        "paid_at": datetime.utcnow(),
        "session_id": session_id,
    }
    if unlimited:
        update_data["unlimited_access"] = True

    try:
        await db.payments.update_one(
            {"user_id": user_id},
            {
                "$set": update_data,
                "$addToSet": {"paid_images": item_id},
            },
            upsert=True
        )
        record = await db.payments.find_one({"user_id": user_id})
    except PyMongoError as e:
        logger.error(f"Failed to record payment for user {user_id}, item {item_id}: {str(e)}")
        raise UpstreamFailure("Unable to record payment") from e

    return PaymentRecord(**record)


async def list_payment_records(db, limit: int = 100):
    records = await db.payments.find({}).sort("paid_at", -1).to_list(limit)
    return [PaymentRecord(**record) for record in records]
