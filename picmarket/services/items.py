import io
import logging
import uuid
from typing import List, Optional

from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from picmarket.core.errors import Internal, NotFound, UpstreamFailure
from picmarket.models.item import ApprovalState, Item
from picmarket.models.user import Identity
from picmarket.services.file import sanitize_filename
from picmarket.services.log import log_activity
from picmarket.services.payments import get_payment_status
from picmarket.services.storage import AssetStore

logger = logging.getLogger(__name__)

NAME_ATTEMPTS = 5


def candidate_names(filename: str):
    name = sanitize_filename(filename)
    yield name
    for _ in range(NAME_ATTEMPTS - 1):
        yield f"{uuid.uuid4().hex[:8]}_{name}"


async def claim_item(db, store: AssetStore, item_fields: dict, filename: str) -> Item:
    """Reserve a name no catalog entry or stored object is using.

    The catalog insert is the claim; the unique index on ``id`` decides
    between concurrent uploads of the same name.
    """
    for name in candidate_names(filename):
        # Legacy objects may exist without a catalog entry
        if await run_in_threadpool(store.resolve, name) is not None:
            continue
        item = Item(id=name, name=name, url=store.upload_resolver.key_for(name), **item_fields)
        try:
            await db.items.insert_one(item.dict())
        except DuplicateKeyError:
            continue
        return item
    raise Internal(f"Could not find a free name for {filename}")


async def upload_item(
    db,
    store: AssetStore,
    identity: Identity,
    filename: str,
    data: bytes,
    content_type: str,
    tags: List[str],
    request=None
) -> Item:
    """Store the image bytes and register the item for review."""
    item = await claim_item(db, store, {
        "owner": identity.uid,
        "approval_state": ApprovalState.pending,
        "tags": tags,
        "content_type": content_type,
        "size": len(data),
    }, filename)
    name = item.id

    try:
        await run_in_threadpool(store.upload, io.BytesIO(data), name, content_type)
    except UpstreamFailure:
        await db.items.delete_one({"id": name})
        raise
    logger.info(f"Item {name} uploaded by {identity.uid}, pending approval")

    await log_activity(
        db,
        user_id=identity.uid,
        action="item_uploaded",
        details=f"Uploaded '{name}' with tags {', '.join(tags) or 'none'}",
        target_id=name,
        target_type="item",
        request=request
    )
    return item


async def get_item(db, item_id: str, approved_only: bool = True) -> Item:
    query = {"id": item_id}
    if approved_only:
        query["approval_state"] = ApprovalState.approved.value
    item = await db.items.find_one(query)
    if not item:
        raise NotFound("Item not found")
    return Item(**item)


async def list_items(db, state: Optional[str] = None, tag: Optional[str] = None,
                     owner: Optional[str] = None, limit: int = 100) -> List[Item]:
    query = {}
    if state:
        query["approval_state"] = state
    if tag:
        query["tags"] = tag.strip().lower()
    if owner:
        query["owner"] = owner

    items = await db.items.find(query).sort("uploaded_at", -1).to_list(limit)
    return [Item(**item) for item in items]


async def list_gallery(db, tag: Optional[str] = None) -> List[Item]:
    return await list_items(db, state=ApprovalState.approved.value, tag=tag)


async def purchase_history(db, identity: Identity) -> dict:
    status = await get_payment_status(db, identity.uid)
    items = []
    if status["paidImages"]:
        docs = await db.items.find({"id": {"$in": status["paidImages"]}}).sort("uploaded_at", -1).to_list(len(status["paidImages"]))
        items = [Item(**doc) for doc in docs]
    return {**status, "items": items}
