"""
Pydantic schemas for balance and transaction history endpoints.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TransactionType = Literal["deposit", "withdrawal", "fee", "interest", "bonus"]
TransactionStatus = Literal["pending", "completed", "failed"]


class BalanceResponse(BaseModel):
    user_id: str
    main_balance: Decimal = Decimal("0.00")
    profit_balance: Decimal = Decimal("0.00")
    total_deposited: Decimal = Decimal("0.00")
    total_withdrawn: Decimal = Decimal("0.00")
    updated_at: Optional[str] = None


class ProfitAdjustmentRequest(BaseModel):
    """Admin profit/interest adjustment; negative amounts remove profit."""
    amount: Decimal = Field(..., max_digits=15, decimal_places=2, examples=["12.50", "-5.00"])
    note: Optional[str] = Field(None, max_length=500)


class TransactionResponse(BaseModel):
    id: str
    user_id: str
    type: TransactionType
    amount: Decimal
    currency: str = "USD"
    deposit_id: Optional[str] = None
    withdrawal_id: Optional[str] = None
    status: TransactionStatus = "completed"
    created_at: Optional[str] = None


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    count: int
    limit: int
    offset: int
