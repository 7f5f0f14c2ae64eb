from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


class ApprovalState(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Item(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str  # object name, e.g. "sunset.jpg"
    name: str
    url: str  # storage key under the upload prefix
    owner: str
    approval_state: ApprovalState = ApprovalState.pending
    tags: List[str] = []
    content_type: str = "application/octet-stream"
    size: int = 0
    rejection_reason: Optional[str] = ""
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


class ItemApprovalUpdate(BaseModel):
    approved: bool
    reason: Optional[str] = None  # Shown to the owner when rejected
