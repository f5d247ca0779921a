"""
Deposit service.

Users open deposit requests (always 'pending') and may attach a proof of
payment. Admins review them: pending -> under_review -> approved/rejected,
then approved -> completed. Completing a deposit credits the owner's main
balance in the same call.
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
    PolicyDenied,
    authorize,
    require_active_account,
    require_admin_context,
    scope_query,
)
from wealthhub.config import settings
from wealthhub.services.audit_service import log_activity, log_admin_action
from wealthhub.services.balance_service import credit_deposit
from wealthhub.services.lifecycle import (
    ConcurrentModification,
    apply_conditional_update,
    build_decision_update,
    ensure_transition,
    utc_now_iso,
)
from wealthhub.services.storage import delete_document, get_document_url, upload_document
from wealthhub.utils.constants import DEPOSITS, STATUS_PENDING
from wealthhub.utils.money import to_db

logger = logging.getLogger(__name__)


async def create_deposit(
    supabase_client: Client,
    ctx: AuthContext,
    amount: Decimal,
    currency: str,
    payment_method: str,
    reference_number: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Open a deposit request for the caller.

    Raises:
        ValueError: Non-positive amount
        PolicyDenied: Account not active, or insert policy rejected the row
    """
    require_active_account(ctx)
    if amount <= 0:
        raise ValueError("Deposit amount must be greater than zero")

    row: Dict[str, Any] = {
        "user_id": ctx.user_id,
        "amount": to_db(amount),
        "currency": currency,
        "payment_method": payment_method,
        "reference_number": reference_number,
        "status": STATUS_PENDING,
    }
    authorize(ctx, DEPOSITS, INSERT, row)

    logger.info(f"Creating deposit for user {ctx.user_id}: {row['amount']} {currency} via {payment_method}")

    result = supabase_client.table(DEPOSITS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create deposit: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    await log_activity(
        supabase_client, ctx, "deposit_requested",
        description=f"Deposit of {row['amount']} {currency} requested",
        metadata={"deposit_id": created.get("id"), "payment_method": payment_method},
    )
    return created


async def list_deposits(
    supabase_client: Client,
    ctx: AuthContext,
    status: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List deposits visible to the caller, newest first."""
    query = scope_query(supabase_client.table(DEPOSITS).select("*"), ctx, DEPOSITS)
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


async def get_deposit(
    supabase_client: Client,
    ctx: AuthContext,
    deposit_id: str
) -> Optional[Dict[str, Any]]:
    """Fetch one deposit, or None if missing or not visible to the caller."""
    query = scope_query(supabase_client.table(DEPOSITS).select("*"), ctx, DEPOSITS)
    result = query.eq("id", deposit_id).execute()
    if not result.data:
        return None

    deposit = cast(Dict[str, Any], result.data[0])
    authorize(ctx, DEPOSITS, SELECT, deposit)
    return deposit


async def attach_deposit_proof(
    supabase_client: Client,
    ctx: AuthContext,
    deposit_id: str,
    file_bytes: bytes,
    filename: str,
    content_type: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Upload a payment proof image for one of the caller's pending deposits.

    The row is only touched while it is still pending; after that the proof
    is part of the reviewed record.

    Returns:
        The updated deposit, or None if not found
    """
    deposit = await get_deposit(supabase_client, ctx, deposit_id)
    if deposit is None:
        return None
    if str(deposit.get("user_id")) != ctx.user_id:
        raise PolicyDenied(DEPOSITS, UPDATE, "Only the depositor can attach a proof")
    authorize(ctx, DEPOSITS, UPDATE, deposit)
    if (deposit.get("status") or STATUS_PENDING) != STATUS_PENDING:
        raise ValueError("Proof can only be attached while the deposit is pending")

    storage_path = await upload_document(
        supabase_client,
        bucket=settings.DEPOSIT_PROOFS_BUCKET,
        user_id=ctx.user_id,
        kind="proof",
        file_bytes=file_bytes,
        filename=filename,
        content_type=content_type,
    )

    try:
        updated = apply_conditional_update(
            supabase_client, DEPOSITS, deposit_id, STATUS_PENDING,
            {"proof_image_url": storage_path, "updated_at": utc_now_iso()},
        )
    except ConcurrentModification:
        await delete_document(supabase_client, settings.DEPOSIT_PROOFS_BUCKET, storage_path)
        raise
    logger.info(f"Proof attached to deposit {deposit_id} by user {ctx.user_id}")
    return updated


def get_deposit_proof_url(supabase_client: Client, deposit: Dict[str, Any]) -> Optional[str]:
    path = deposit.get("proof_image_url")
    if not path:
        return None
    return get_document_url(supabase_client, settings.DEPOSIT_PROOFS_BUCKET, path)


async def update_deposit_status(
    supabase_client: Client,
    ctx: AuthContext,
    deposit_id: str,
    status: str,
    admin_notes: Optional[str] = None,
    rejection_reason: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Admin decision on a deposit.

    Moving to 'completed' credits the balance. If the credit fails, the
    status is put back to 'approved' and the error is re-raised, so a
    deposit is never marked completed without its balance credit.

    Raises:
        PolicyDenied: Caller is not an admin
        InvalidTransition: Status move not allowed
        ConcurrentModification: Another admin changed the deposit first
    """
    require_admin_context(ctx)

    deposit = await get_deposit(supabase_client, ctx, deposit_id)
    if deposit is None:
        return None

    authorize(ctx, DEPOSITS, UPDATE, deposit)
    current_status = deposit.get("status") or STATUS_PENDING
    ensure_transition(DEPOSITS, current_status, status)

    update = build_decision_update(
        DEPOSITS, status, ctx.user_id,
        admin_notes=admin_notes, rejection_reason=rejection_reason,
    )
    updated = apply_conditional_update(supabase_client, DEPOSITS, deposit_id, current_status, update)

    if status == "completed":
        try:
            await credit_deposit(supabase_client, ctx, updated)
        except Exception as e:
            logger.error(f"Balance credit failed for deposit {deposit_id}, reverting status: {e}")
            apply_conditional_update(
                supabase_client, DEPOSITS, deposit_id, status,
                {"status": current_status, "updated_at": utc_now_iso()},
            )
            raise

    await log_admin_action(
        supabase_client, ctx, "deposit_status_changed", DEPOSITS, deposit_id,
        {"from": current_status, "to": status, "rejection_reason": rejection_reason},
    )

    logger.info(f"Deposit {deposit_id} moved {current_status} -> {status} by admin {ctx.user_id}")
    return updated
