from fastapi import APIRouter, Depends, HTTPException, Request, Form, File, UploadFile
from typing import List, Optional

from picmarket.core.config import settings
from picmarket.db.session import get_db
from picmarket.models.item import Item
from picmarket.models.user import Identity
from picmarket.services.auth import get_current_identity
from picmarket.services.file import get_media_type_for_file, parse_tags
from picmarket.services.items import get_item, list_gallery, list_items, upload_item
from picmarket.services.storage import get_storage

router = APIRouter()


@router.post("/items", response_model=Item)
async def create_item(
    request: Request,
    file: UploadFile = File(...),
    tags: Optional[str] = Form(None),
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
    store=Depends(get_storage)
):
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        content_type = get_media_type_for_file(file.filename or "") or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image uploads are accepted")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    return await upload_item(
        db,
        store,
        identity,
        filename=file.filename or "",
        data=data,
        content_type=content_type,
        tags=parse_tags(tags),
        request=request
    )


@router.get("/items", response_model=List[Item])
async def get_gallery(tag: Optional[str] = None, db=Depends(get_db)):
    return await list_gallery(db, tag=tag)


@router.get("/items/{item_id}", response_model=Item)
async def get_gallery_item(item_id: str, db=Depends(get_db)):
    return await get_item(db, item_id)


@router.get("/my-items", response_model=List[Item])
async def get_my_items(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return await list_items(db, owner=identity.uid)
