"""
Pydantic schemas for deposit payment method endpoints.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PaymentMethodKind = Literal["bank_transfer", "bitcoin", "ethereum", "crypto_other", "credit_card"]


class PaymentMethodFields(BaseModel):
    display_name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    bank_name: Optional[str] = Field(None, max_length=200)
    account_name: Optional[str] = Field(None, max_length=200)
    account_number: Optional[str] = Field(None, max_length=64)
    routing_number: Optional[str] = Field(None, max_length=64)
    swift_code: Optional[str] = Field(None, max_length=32)
    iban: Optional[str] = Field(None, max_length=64)
    crypto_address: Optional[str] = Field(None, max_length=256)
    crypto_network: Optional[str] = Field(None, max_length=64)
    qr_code_url: Optional[str] = Field(None, max_length=1000)


class PaymentMethodCreateRequest(PaymentMethodFields):
    payment_method: PaymentMethodKind
    display_name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True


class PaymentMethodUpdateRequest(PaymentMethodFields):
    payment_method: Optional[PaymentMethodKind] = None
    is_active: Optional[bool] = None


class PaymentMethodResponse(PaymentMethodFields):
    id: str
    payment_method: PaymentMethodKind
    is_active: bool = True
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PaymentMethodListResponse(BaseModel):
    payment_methods: List[PaymentMethodResponse]
    count: int


class PaymentMethodDeleteResponse(BaseModel):
    status: Literal["DELETED"] = "DELETED"
    payment_method_id: str
