"""
Admin dashboard aggregates.

- get_dashboard_summary: the admin_dashboard_summary view (seven counters,
  recomputed by Postgres on every read)
- get_admin_stats: independent count queries behind the dashboard tiles
- get_analytics: per-status breakdowns and completed totals

All functions are admin-only. Nothing is cached.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import AuthContext, require_admin_context, scope_query
from wealthhub.utils.constants import (
    DASHBOARD_SUMMARY_VIEW,
    DEPOSIT_STATUSES,
    DEPOSITS,
    KYC_DOCUMENTS,
    KYC_STATUSES,
    PROFILES,
    WITHDRAWAL_STATUSES,
    WITHDRAWALS,
)
from wealthhub.utils.money import to_db, to_decimal

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = (
    "total_users",
    "kyc_approved_users",
    "pending_kyc",
    "pending_deposits",
    "pending_withdrawals",
    "total_deposits",
    "total_withdrawals",
)


async def get_dashboard_summary(
    supabase_client: Client,
    ctx: AuthContext
) -> Dict[str, Any]:
    """
    Read the admin_dashboard_summary view.

    Returns zeros when the view yields no row.
    """
    require_admin_context(ctx)

    query = scope_query(
        supabase_client.table(DASHBOARD_SUMMARY_VIEW).select("*"), ctx, DASHBOARD_SUMMARY_VIEW
    )
    result = query.execute()

    row = cast(Dict[str, Any], result.data[0]) if result.data else {}
    summary: Dict[str, Any] = {}
    for name in SUMMARY_FIELDS:
        value = row.get(name)
        if name in ("total_deposits", "total_withdrawals"):
            summary[name] = to_db(to_decimal(value))
        else:
            summary[name] = int(value or 0)
    return summary


def _count(
    supabase_client: Client,
    table: str,
    column: Optional[str] = None,
    value: Any = None,
) -> int:
    query = supabase_client.table(table).select("id", count="exact")
    if column is not None:
        query = query.eq(column, value)
    result = query.execute()
    return int(result.count or 0)


async def get_admin_stats(
    supabase_client: Client,
    ctx: AuthContext
) -> Dict[str, int]:
    """Count queries for the dashboard tiles."""
    require_admin_context(ctx)

    stats = {
        "total_users": _count(supabase_client, PROFILES),
        "approved_deposits": _count(supabase_client, DEPOSITS, "status", "approved"),
        "pending_deposits": _count(supabase_client, DEPOSITS, "status", "pending"),
        "pending_withdrawals": _count(supabase_client, WITHDRAWALS, "status", "pending"),
        "pending_kyc": _count(supabase_client, KYC_DOCUMENTS, "status", "pending"),
    }
    logger.info(f"Admin stats computed for admin {ctx.user_id}")
    return stats


def _group_by_status(rows: List[Dict[str, Any]], statuses: tuple) -> Dict[str, int]:
    counts = {name: 0 for name in statuses}
    for row in rows:
        status = row.get("status")
        if status in counts:
            counts[status] += 1
    return counts


def _completed_total(rows: List[Dict[str, Any]]) -> str:
    total = Decimal("0.00")
    for row in rows:
        if row.get("status") == "completed":
            total += to_decimal(row.get("amount"))
    return to_db(total)


async def get_analytics(
    supabase_client: Client,
    ctx: AuthContext
) -> Dict[str, Any]:
    """
    Status breakdowns for deposits, withdrawals and KYC, plus the completed
    deposit and withdrawal totals.
    """
    require_admin_context(ctx)

    deposits = cast(
        List[Dict[str, Any]],
        supabase_client.table(DEPOSITS).select("status, amount").execute().data or [],
    )
    withdrawals = cast(
        List[Dict[str, Any]],
        supabase_client.table(WITHDRAWALS).select("status, amount").execute().data or [],
    )
    kyc = cast(
        List[Dict[str, Any]],
        supabase_client.table(KYC_DOCUMENTS).select("status").execute().data or [],
    )

    return {
        "deposits_by_status": _group_by_status(deposits, DEPOSIT_STATUSES),
        "withdrawals_by_status": _group_by_status(withdrawals, WITHDRAWAL_STATUSES),
        "kyc_by_status": _group_by_status(kyc, KYC_STATUSES),
        "completed_deposit_total": _completed_total(deposits),
        "completed_withdrawal_total": _completed_total(withdrawals),
    }
