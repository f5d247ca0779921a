"""
Pydantic schemas for deposit endpoints.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

Currency = Literal["USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF"]
DepositPaymentMethod = Literal["bank_transfer", "credit_card", "crypto", "wire"]
DepositStatus = Literal["pending", "under_review", "approved", "rejected", "completed"]


class DepositCreateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2, examples=["250.00"])
    currency: Currency = Field("USD", description="ISO currency code")
    payment_method: DepositPaymentMethod = Field(..., description="How the money is sent")
    reference_number: Optional[str] = Field(
        None, max_length=100, description="Bank or transaction reference given by the user"
    )


class DepositResponse(BaseModel):
    id: str
    user_id: str
    amount: Decimal
    currency: Currency = "USD"
    payment_method: DepositPaymentMethod
    reference_number: Optional[str] = None
    proof_image_url: Optional[str] = Field(None, description="Storage path in the deposit-proofs bucket")
    status: DepositStatus = "pending"
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DepositDetailResponse(BaseModel):
    deposit: DepositResponse
    proof_url: Optional[str] = Field(None, description="Signed URL for the proof image")


class DepositListResponse(BaseModel):
    deposits: List[DepositResponse]
    count: int
    limit: int
    offset: int


class DepositStatusUpdateRequest(BaseModel):
    """
    Admin decision. Completing an approved deposit credits the balance.
    """
    status: Literal["under_review", "approved", "rejected", "completed"]
    admin_notes: Optional[str] = Field(None, max_length=2000)
    rejection_reason: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_rejection_reason(self) -> "DepositStatusUpdateRequest":
        if self.status == "rejected" and not self.rejection_reason:
            raise ValueError("rejection_reason is required when rejecting")
        return self
