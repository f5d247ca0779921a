"""
Transaction record service.

transactions rows are a history of balance movements created alongside
completed deposits and withdrawals, fees, profit credits and referral
bonuses. Rows are only appended, except that an admin marks a row failed
when the balance write it belongs to does not go through. They are informational: balances live in
account_balances and are not recomputed from this table.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    INSERT,
    AuthContext,
    authorize,
    require_admin_context,
    scope_query,
)
from wealthhub.utils.constants import TRANSACTION_TYPES, TRANSACTIONS
from wealthhub.utils.money import to_db

logger = logging.getLogger(__name__)


async def record_transaction(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: str,
    transaction_type: str,
    amount: Decimal,
    currency: str = "USD",
    deposit_id: Optional[str] = None,
    withdrawal_id: Optional[str] = None,
    status: str = "completed",
) -> Dict[str, Any]:
    """
    Append a transaction row (admins only).

    Raises:
        ValueError: Unknown transaction type
        PolicyDenied: Caller may not insert transactions
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise ValueError(f"Invalid transaction type '{transaction_type}'")

    row: Dict[str, Any] = {
        "user_id": user_id,
        "type": transaction_type,
        "amount": to_db(amount),
        "currency": currency,
        "status": status,
    }
    if deposit_id:
        row["deposit_id"] = deposit_id
    if withdrawal_id:
        row["withdrawal_id"] = withdrawal_id

    authorize(ctx, TRANSACTIONS, INSERT, row)

    result = supabase_client.table(TRANSACTIONS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to record transaction: no data returned")

    logger.info(f"Recorded {transaction_type} transaction for user {user_id}")
    return cast(Dict[str, Any], result.data[0])


async def list_transactions(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None,
    transaction_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List transactions visible to the caller, newest first."""
    query = scope_query(supabase_client.table(TRANSACTIONS).select("*"), ctx, TRANSACTIONS)
    if user_id and ctx.is_admin:
        query = query.eq("user_id", user_id)
    if transaction_type:
        query = query.eq("type", transaction_type)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def mark_transactions_failed(
    supabase_client: Client,
    ctx: AuthContext,
    transaction_ids: List[str],
) -> None:
    """Set status 'failed' on rows whose balance write did not go through (admins only)."""
    if not transaction_ids:
        return
    require_admin_context(ctx)

    supabase_client.table(TRANSACTIONS).update({"status": "failed"}).in_(
        "id", transaction_ids
    ).execute()
    logger.warning(f"Marked {len(transaction_ids)} transaction(s) failed")
