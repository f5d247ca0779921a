"""
Pydantic schemas for withdrawal endpoints.

net_amount is generated by the database (amount - fee) and is read-only.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from wealthhub.schemas.deposits import Currency

WithdrawalStatus = Literal["pending", "approved", "rejected", "processing", "completed", "failed"]


class WithdrawalCreateRequest(BaseModel):
    withdrawal_account_id: str = Field(..., description="One of the caller's active withdrawal accounts")
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2, examples=["100.00"])
    currency: Currency = "USD"


class WithdrawalResponse(BaseModel):
    id: str
    user_id: str
    withdrawal_account_id: Optional[str] = None
    amount: Decimal
    currency: Currency = "USD"
    fee: Decimal = Decimal("0.00")
    net_amount: Optional[Decimal] = Field(None, description="amount - fee (generated column)")
    status: WithdrawalStatus = "pending"
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    transaction_reference: Optional[str] = None
    requested_at: Optional[str] = None
    approved_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WithdrawalListResponse(BaseModel):
    withdrawals: List[WithdrawalResponse]
    count: int
    limit: int
    offset: int


class WithdrawalStatusUpdateRequest(BaseModel):
    """
    Admin decision. 'rejected' and 'failed' require a rejection_reason.
    Completing a withdrawal debits the owner's main balance.
    """
    status: Literal["approved", "rejected", "processing", "completed", "failed"]
    admin_notes: Optional[str] = Field(None, max_length=2000)
    rejection_reason: Optional[str] = Field(None, max_length=2000)
    transaction_reference: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def check_rejection_reason(self) -> "WithdrawalStatusUpdateRequest":
        if self.status in ("rejected", "failed") and not self.rejection_reason:
            raise ValueError(f"rejection_reason is required when setting status '{self.status}'")
        return self


class WithdrawalFeeUpdateRequest(BaseModel):
    fee: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
