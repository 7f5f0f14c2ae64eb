import bcrypt
from jose import JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from picmarket.core.config import settings
from picmarket.core.errors import PermissionDenied, Unauthenticated
from picmarket.db.session import get_db
from picmarket.models.user import Identity, User

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_identity(token: str) -> Identity:
    """Verify a bearer token and return its subject."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise Unauthenticated("Invalid authentication credentials")

    user_id = payload.get("sub")
    if user_id is None:
        raise Unauthenticated("Invalid authentication credentials")
    return Identity(uid=user_id, email=payload.get("email") or "")


async def get_current_identity(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Identity:
    if credentials is None:
        raise Unauthenticated()
    return decode_identity(credentials.credentials)


async def get_current_user(identity: Identity = Depends(get_current_identity), db=Depends(get_db)) -> User:
    user = await db.users.find_one({"id": identity.uid})
    if user is None:
        raise Unauthenticated("User not found")
    return User(**user)


async def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise PermissionDenied("Admin access required")
    return current_user
