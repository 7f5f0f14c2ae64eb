from pydantic import BaseModel, Field
from typing import Optional
import uuid
from datetime import datetime


class UserCreate(BaseModel):
    username: str
    email: str
    password: str


class UserLogin(BaseModel):
    email: str
    password: str


class User(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str = ""
    username: Optional[str] = ""
    is_admin: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Identity(BaseModel):
    """The verified subject of a bearer token."""
    uid: str
    email: Optional[str] = ""


class Token(BaseModel):
    access_token: str
    token_type: str


class AdminGrantResult(BaseModel):
    success: bool
    message: str
    isAdmin: bool
