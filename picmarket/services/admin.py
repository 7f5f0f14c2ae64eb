from datetime import datetime
from typing import Optional
import logging

from picmarket.core.config import settings
from picmarket.core.errors import InvalidTransition, NotFound, PermissionDenied
from picmarket.models.item import ApprovalState, Item
from picmarket.models.user import Identity, User
from picmarket.services.log import log_activity

logger = logging.getLogger(__name__)


async def grant_admin(db, identity: Identity) -> dict:
    """Give the caller admin rights. Safe to call repeatedly."""
    if not settings.ADMIN_SETUP_ENABLED:
        raise PermissionDenied("Admin setup is disabled")

    user = await db.users.find_one({"id": identity.uid})
    if user:
        if user.get("is_admin"):
            return {"success": True, "message": "Already admin", "isAdmin": True}
        await db.users.update_one({"id": identity.uid}, {"$set": {"is_admin": True}})
        message = "Admin privileges granted"
    else:
        user_obj = User(id=identity.uid, email=identity.email or "", is_admin=True)
        await db.users.insert_one(user_obj.dict())
        message = "Admin created"

    logger.info(f"Admin granted to {identity.uid}")
    await log_activity(
        db,
        user_id=identity.uid,
        action="admin_granted",
        details=message,
        target_id=identity.uid,
        target_type="user"
    )
    return {"success": True, "message": message, "isAdmin": True}


async def set_approval(
    db,
    admin_user: User,
    item_id: str,
    approved: bool,
    reason: Optional[str] = None
) -> Item:
    item_doc = await db.items.find_one({"id": item_id})
    if not item_doc:
        raise NotFound("Item not found")
    item = Item(**item_doc)

    target = ApprovalState.approved if approved else ApprovalState.rejected
    if item.approval_state == target:
        return item
    if item.approval_state != ApprovalState.pending:
        raise InvalidTransition(
            f"Cannot move item from '{item.approval_state}' to '{target.value}'"
        )

    update_data = {
        "approval_state": target.value,
        "reviewed_by": admin_user.id,
        "reviewed_at": datetime.utcnow(),
        "rejection_reason": "" if approved else (reason or "No reason provided"),
    }
    # Guard on the current state so two reviewers cannot both win
    result = await db.items.update_one(
        {"id": item_id, "approval_state": ApprovalState.pending.value},
        {"$set": update_data}
    )
    if result.matched_count == 0:
        raise InvalidTransition("Item was reviewed concurrently")

    await log_activity(
        db,
        user_id=admin_user.id,
        action="item_approved" if approved else "item_rejected",
        details=f"{target.value.capitalize()} item '{item.name}'",
        target_id=item_id,
        target_type="item"
    )

    item_doc.update(update_data)
    return Item(**item_doc)
