from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class PaymentRecord(BaseModel):
    user_id: str
    has_paid: bool = False
    paid_images: List[str] = []
    paid_at: Optional[datetime] = None
    session_id: Optional[str] = None
    unlimited_access: bool = False

    def status(self) -> dict:
        return {
            "hasPaid": self.has_paid,
            "paidImages": list(self.paid_images),
            "paidAt": self.paid_at,
        }


class CheckoutRequest(BaseModel):
    origin: str
    itemId: str = Field(..., min_length=1)
    itemUrl: Optional[str] = None


class CheckoutSession(BaseModel):
    sessionId: str
    url: str
