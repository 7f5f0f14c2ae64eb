from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from picmarket.db.session import get_db
from picmarket.models.item import ApprovalState, Item, ItemApprovalUpdate
from picmarket.models.payment import PaymentRecord
from picmarket.models.user import AdminGrantResult, Identity, User
from picmarket.services.admin import grant_admin, set_approval
from picmarket.services.auth import get_admin_user, get_current_identity
from picmarket.services.items import list_items
from picmarket.services.payments import list_payment_records

router = APIRouter()


@router.post("/admin/setup", response_model=AdminGrantResult)
async def setup_admin(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return await grant_admin(db, identity)


@router.get("/admin/items", response_model=List[Item])
async def get_all_items(
    state: Optional[ApprovalState] = None,
    limit: int = Query(100, le=1000),
    admin_user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    return await list_items(db, state=state.value if state else None, limit=limit)


@router.put("/admin/items/{item_id}/approval", response_model=Item)
async def update_item_approval(
    item_id: str,
    approval: ItemApprovalUpdate,
    admin_user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    return await set_approval(db, admin_user, item_id, approval.approved, approval.reason)


@router.get("/admin/payments", response_model=List[PaymentRecord])
async def get_all_payments(
    limit: int = Query(100, le=1000),
    admin_user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    return await list_payment_records(db, limit=limit)
