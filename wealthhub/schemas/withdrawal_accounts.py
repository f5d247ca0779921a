"""
Pydantic schemas for withdrawal account endpoints.

Each account_type requires its own fields:
- bank:   account_number, account_holder_name
- crypto: crypto_address, crypto_type
- paypal: paypal_email
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from wealthhub.utils.constants import WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS

WithdrawalAccountType = Literal["bank", "crypto", "paypal"]
CryptoType = Literal["bitcoin", "ethereum", "litecoin", "ripple", "solana", "usdc", "tether"]


class WithdrawalAccountFields(BaseModel):
    bank_name: Optional[str] = Field(None, max_length=200)
    account_number: Optional[str] = Field(None, max_length=64)
    account_holder_name: Optional[str] = Field(None, max_length=200)
    routing_number: Optional[str] = Field(None, max_length=64)
    swift_code: Optional[str] = Field(None, max_length=32)
    iban: Optional[str] = Field(None, max_length=64)
    crypto_address: Optional[str] = Field(None, max_length=256)
    crypto_type: Optional[CryptoType] = None
    crypto_network: Optional[str] = Field(None, max_length=64)
    paypal_email: Optional[EmailStr] = None


class WithdrawalAccountCreateRequest(WithdrawalAccountFields):
    account_type: WithdrawalAccountType = Field(..., description="Payout channel")
    is_active: bool = True

    @model_validator(mode="after")
    def check_required_fields(self) -> "WithdrawalAccountCreateRequest":
        required = WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS[self.account_type]
        missing = [name for name in required if not getattr(self, name)]
        if missing:
            raise ValueError(
                f"{self.account_type} withdrawal accounts require: {', '.join(missing)}"
            )
        return self


class WithdrawalAccountUpdateRequest(WithdrawalAccountFields):
    """Partial update; the merged account is re-validated by the service."""
    account_type: Optional[WithdrawalAccountType] = None
    is_active: Optional[bool] = None


class WithdrawalAccountResponse(WithdrawalAccountFields):
    id: str
    user_id: str
    account_type: WithdrawalAccountType
    paypal_email: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WithdrawalAccountListResponse(BaseModel):
    accounts: List[WithdrawalAccountResponse]
    count: int


class WithdrawalAccountDeleteResponse(BaseModel):
    status: Literal["DELETED"] = "DELETED"
    account_id: str
    message: str = "Withdrawal account deleted successfully"
