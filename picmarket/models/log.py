from pydantic import BaseModel, Field
from typing import Optional
import uuid
from datetime import datetime


class ActivityLog(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    action: str  # 'item_uploaded', 'item_approved', 'item_rejected', 'admin_granted'
    details: str  # Human-readable description of the action
    target_id: Optional[str] = None
    target_type: Optional[str] = None  # 'item', 'user'
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
