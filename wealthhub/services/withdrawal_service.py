"""
Withdrawal service.

Users request payouts to one of their active withdrawal accounts. The fee is
a configured percentage of the amount (rounded down to the cent) and
net_amount is a generated column (amount - fee).

Admin lifecycle: pending -> approved -> processing -> completed, with
rejected/failed as terminal exits. Completing a withdrawal debits the
owner's main balance; a balance that does not cover the amount blocks the
status change.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    INSERT,
    SELECT,
    UPDATE,
    AuthContext,
    authorize,
    require_active_account,
    require_admin_context,
    scope_query,
)
from wealthhub.config import settings
from wealthhub.services.audit_service import log_activity, log_admin_action
from wealthhub.services.balance_service import (
    debit_withdrawal,
    ensure_sufficient_funds,
    get_balance,
    get_or_create_balance,
)
from wealthhub.services.lifecycle import (
    apply_conditional_update,
    build_decision_update,
    ensure_transition,
    utc_now_iso,
)
from wealthhub.services.withdrawal_account_service import get_withdrawal_account
from wealthhub.utils.constants import STATUS_PENDING, WITHDRAWALS
from wealthhub.utils.money import calculate_withdrawal_fee, compute_net_amount, to_db

logger = logging.getLogger(__name__)

# Fee can only be changed before money moves
FEE_EDITABLE_STATUSES = ("pending", "approved")


async def create_withdrawal(
    supabase_client: Client,
    ctx: AuthContext,
    withdrawal_account_id: str,
    amount: Decimal,
    currency: str = "USD",
) -> Dict[str, Any]:
    """
    Request a withdrawal to one of the caller's withdrawal accounts.

    Raises:
        ValueError: Non-positive amount, unknown or inactive account
        InsufficientBalance: Amount exceeds the caller's main balance
        PolicyDenied: Account not active, or insert policy rejected the row
    """
    require_active_account(ctx)
    if amount <= 0:
        raise ValueError("Withdrawal amount must be greater than zero")

    account = await get_withdrawal_account(supabase_client, ctx, withdrawal_account_id)
    if account is None or str(account.get("user_id")) != ctx.user_id:
        raise ValueError("Withdrawal account not found")
    if account.get("is_active") is False:
        raise ValueError("Withdrawal account is not active")

    balance = await get_balance(supabase_client, ctx)
    ensure_sufficient_funds(balance, amount)

    fee = calculate_withdrawal_fee(amount, settings.WITHDRAWAL_FEE_PERCENT)
    compute_net_amount(amount, fee)

    row: Dict[str, Any] = {
        "user_id": ctx.user_id,
        "withdrawal_account_id": withdrawal_account_id,
        "amount": to_db(amount),
        "fee": to_db(fee),
        "currency": currency,
        "status": STATUS_PENDING,
        "requested_at": utc_now_iso(),
    }
    authorize(ctx, WITHDRAWALS, INSERT, row)

    logger.info(
        f"Creating withdrawal for user {ctx.user_id}: {row['amount']} {currency} "
        f"(fee {row['fee']}) to account {withdrawal_account_id}"
    )

    result = supabase_client.table(WITHDRAWALS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create withdrawal: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    await log_activity(
        supabase_client, ctx, "withdrawal_requested",
        description=f"Withdrawal of {row['amount']} {currency} requested",
        metadata={"withdrawal_id": created.get("id"), "withdrawal_account_id": withdrawal_account_id},
    )
    return created


async def list_withdrawals(
    supabase_client: Client,
    ctx: AuthContext,
    status: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List withdrawals visible to the caller, newest first."""
    query = scope_query(supabase_client.table(WITHDRAWALS).select("*"), ctx, WITHDRAWALS)
    if user_id and ctx.is_admin:
        query = query.eq("user_id", user_id)
    if status:
        query = query.eq("status", status)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def get_withdrawal(
    supabase_client: Client,
    ctx: AuthContext,
    withdrawal_id: str
) -> Optional[Dict[str, Any]]:
    """Fetch one withdrawal, or None if missing or not visible to the caller."""
    query = scope_query(supabase_client.table(WITHDRAWALS).select("*"), ctx, WITHDRAWALS)
    result = query.eq("id", withdrawal_id).execute()
    if not result.data:
        return None

    withdrawal = cast(Dict[str, Any], result.data[0])
    authorize(ctx, WITHDRAWALS, SELECT, withdrawal)
    return withdrawal


async def update_withdrawal_status(
    supabase_client: Client,
    ctx: AuthContext,
    withdrawal_id: str,
    status: str,
    admin_notes: Optional[str] = None,
    rejection_reason: Optional[str] = None,
    transaction_reference: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Admin decision on a withdrawal.

    For 'completed' the balance is checked before the status moves, then
    debited after it. A failed debit puts the status back to 'processing'
    and re-raises.

    Raises:
        PolicyDenied: Caller is not an admin
        InvalidTransition: Status move not allowed
        InsufficientBalance: Owner's main balance does not cover the amount
        ConcurrentModification: Another admin changed the withdrawal first
    """
    require_admin_context(ctx)

    withdrawal = await get_withdrawal(supabase_client, ctx, withdrawal_id)
    if withdrawal is None:
        return None

    authorize(ctx, WITHDRAWALS, UPDATE, withdrawal)
    current_status = withdrawal.get("status") or STATUS_PENDING
    ensure_transition(WITHDRAWALS, current_status, status)

    if status == "completed":
        balance = await get_or_create_balance(supabase_client, ctx, str(withdrawal["user_id"]))
        ensure_sufficient_funds(balance, withdrawal.get("amount"))

    update = build_decision_update(
        WITHDRAWALS, status, ctx.user_id,
        admin_notes=admin_notes, rejection_reason=rejection_reason,
    )
    if transaction_reference is not None:
        update["transaction_reference"] = transaction_reference
    updated = apply_conditional_update(
        supabase_client, WITHDRAWALS, withdrawal_id, current_status, update
    )

    if status == "completed":
        try:
            await debit_withdrawal(supabase_client, ctx, updated)
        except Exception as e:
            logger.error(f"Balance debit failed for withdrawal {withdrawal_id}, reverting status: {e}")
            apply_conditional_update(
                supabase_client, WITHDRAWALS, withdrawal_id, status,
                {"status": current_status, "completed_at": None, "updated_at": utc_now_iso()},
            )
            raise

    await log_admin_action(
        supabase_client, ctx, "withdrawal_status_changed", WITHDRAWALS, withdrawal_id,
        {"from": current_status, "to": status, "rejection_reason": rejection_reason},
    )

    logger.info(f"Withdrawal {withdrawal_id} moved {current_status} -> {status} by admin {ctx.user_id}")
    return updated


async def update_withdrawal_fee(
    supabase_client: Client,
    ctx: AuthContext,
    withdrawal_id: str,
    fee: Decimal,
) -> Optional[Dict[str, Any]]:
    """
    Admin override of a withdrawal's fee.

    The database recomputes net_amount; the fee must stay within the amount.

    Raises:
        ValueError: Fee negative or above the amount, or money already moving
    """
    require_admin_context(ctx)

    withdrawal = await get_withdrawal(supabase_client, ctx, withdrawal_id)
    if withdrawal is None:
        return None

    authorize(ctx, WITHDRAWALS, UPDATE, withdrawal)
    current_status = withdrawal.get("status") or STATUS_PENDING
    if current_status not in FEE_EDITABLE_STATUSES:
        raise ValueError(f"Fee cannot be changed once the withdrawal is '{current_status}'")

    net_amount = compute_net_amount(withdrawal.get("amount"), fee)

    updated = apply_conditional_update(
        supabase_client, WITHDRAWALS, withdrawal_id, current_status,
        {"fee": to_db(fee), "updated_at": utc_now_iso()},
    )

    await log_admin_action(
        supabase_client, ctx, "withdrawal_fee_changed", WITHDRAWALS, withdrawal_id,
        {"from": str(withdrawal.get("fee")), "to": to_db(fee), "net_amount": to_db(net_amount)},
    )
    return updated
