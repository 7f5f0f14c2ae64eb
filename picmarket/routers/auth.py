from fastapi import APIRouter, Depends, HTTPException
from datetime import timedelta

from picmarket.models.user import Token, UserCreate, UserLogin, User
from picmarket.db.session import get_db
from picmarket.services.auth import (
    hash_password,
    create_access_token,
    verify_password,
)
from picmarket.core.config import settings

router = APIRouter()


def issue_token(user_id: str, email: str) -> dict:
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user_id, "email": email}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/auth/register", response_model=Token)
async def register(user_data: UserCreate, db=Depends(get_db)):
    existing_user = await db.users.find_one({"$or": [{"email": user_data.email}, {"username": user_data.username}]})
    if existing_user:
        raise HTTPException(status_code=400, detail="User already exists")

    user_obj = User(username=user_data.username, email=user_data.email)
    user_doc = user_obj.dict()
    user_doc["hashed_password"] = hash_password(user_data.password)
    await db.users.insert_one(user_doc)

    return issue_token(user_obj.id, user_obj.email)


@router.post("/auth/login", response_model=Token)
async def login(user_data: UserLogin, db=Depends(get_db)):
    user = await db.users.find_one({"email": user_data.email})
    if not user or not user.get("hashed_password") or not verify_password(user_data.password, user["hashed_password"]):
        raise HTTPException(status_code=400, detail="Incorrect email or password")

    return issue_token(user["id"], user["email"])
