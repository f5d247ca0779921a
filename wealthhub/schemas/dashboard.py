"""
Pydantic schemas for the admin dashboard.
"""

from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, Field


class DashboardSummaryResponse(BaseModel):
    """The admin_dashboard_summary view, recomputed on every read."""
    total_users: int = 0
    kyc_approved_users: int = 0
    pending_kyc: int = 0
    pending_deposits: int = 0
    pending_withdrawals: int = 0
    total_deposits: Decimal = Field(Decimal("0.00"), description="Sum of completed deposits")
    total_withdrawals: Decimal = Field(Decimal("0.00"), description="Sum of completed withdrawals")


class AdminStatsResponse(BaseModel):
    total_users: int
    approved_deposits: int
    pending_deposits: int
    pending_withdrawals: int
    pending_kyc: int


class AnalyticsResponse(BaseModel):
    deposits_by_status: Dict[str, int]
    withdrawals_by_status: Dict[str, int]
    kyc_by_status: Dict[str, int]
    completed_deposit_total: Decimal
    completed_withdrawal_total: Decimal
