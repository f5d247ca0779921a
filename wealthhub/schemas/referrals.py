"""
Pydantic schemas for referral endpoints.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ReferralResponse(BaseModel):
    id: str
    referrer_id: str = Field(..., description="User who shared the code")
    referred_id: str = Field(..., description="User who signed up with it")
    bonus_amount: Decimal = Decimal("0.00")
    bonus_paid: bool = False
    paid_at: Optional[str] = None
    created_at: Optional[str] = None


class ReferralListResponse(BaseModel):
    referrals: List[ReferralResponse]
    count: int
    limit: int
    offset: int
