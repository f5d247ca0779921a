"""
Withdrawal account service.

Payout destinations owned by a user. Each account_type requires its own
fields (bank: account number and holder; crypto: address and coin; paypal:
email); the same rule is a CHECK constraint in the database.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    DELETE,
    INSERT,
    SELECT,
    UPDATE,
    AuthContext,
    authorize,
    scope_query,
)
from wealthhub.services.audit_service import log_activity
from wealthhub.services.lifecycle import utc_now_iso
from wealthhub.utils.constants import (
    CRYPTO_TYPES,
    WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS,
    WITHDRAWAL_ACCOUNTS,
)
from wealthhub.utils.logging import mask_value

logger = logging.getLogger(__name__)


def validate_account_fields(account: Mapping[str, Any]) -> None:
    """
    Check that the populated fields match the declared account_type.

    Raises:
        ValueError: Unknown type, missing required field, or bad crypto_type
    """
    account_type = account.get("account_type")
    required = WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS.get(str(account_type))
    if required is None:
        raise ValueError(
            f"Invalid account_type '{account_type}'. "
            f"Must be one of: {', '.join(WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS)}"
        )

    missing = [name for name in required if not account.get(name)]
    if missing:
        raise ValueError(
            f"{account_type} withdrawal accounts require: {', '.join(missing)}"
        )

    crypto_type = account.get("crypto_type")
    if crypto_type is not None and crypto_type not in CRYPTO_TYPES:
        raise ValueError(f"Invalid crypto_type '{crypto_type}'")


async def create_withdrawal_account(
    supabase_client: Client,
    ctx: AuthContext,
    **fields: Any
) -> Dict[str, Any]:
    """
    Create a withdrawal account for the caller.

    Raises:
        ValueError: Fields do not match account_type
        PolicyDenied: Insert policy rejected the row
    """
    row = {k: v for k, v in fields.items() if v is not None}
    row["user_id"] = ctx.user_id
    validate_account_fields(row)
    authorize(ctx, WITHDRAWAL_ACCOUNTS, INSERT, row)

    destination = WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS[row["account_type"]][0]
    logger.info(
        f"Creating {row['account_type']} withdrawal account "
        f"{mask_value(str(row[destination]))} for user {ctx.user_id}"
    )

    result = supabase_client.table(WITHDRAWAL_ACCOUNTS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create withdrawal account: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    await log_activity(
        supabase_client, ctx, "withdrawal_account_added",
        metadata={"withdrawal_account_id": created.get("id"), "account_type": row["account_type"]},
    )
    return created


async def list_withdrawal_accounts(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None,
    active_only: bool = False,
) -> List[Dict[str, Any]]:
    """List withdrawal accounts visible to the caller, newest first."""
    query = scope_query(
        supabase_client.table(WITHDRAWAL_ACCOUNTS).select("*"), ctx, WITHDRAWAL_ACCOUNTS
    )
    if user_id and ctx.is_admin:
        query = query.eq("user_id", user_id)
    if active_only:
        query = query.eq("is_active", True)

    result = query.order("created_at", desc=True).execute()
    return cast(List[Dict[str, Any]], result.data or [])


async def get_withdrawal_account(
    supabase_client: Client,
    ctx: AuthContext,
    account_id: str
) -> Optional[Dict[str, Any]]:
    """Fetch one withdrawal account, or None if missing or not visible."""
    query = scope_query(
        supabase_client.table(WITHDRAWAL_ACCOUNTS).select("*"), ctx, WITHDRAWAL_ACCOUNTS
    )
    result = query.eq("id", account_id).execute()
    if not result.data:
        return None

    account = cast(Dict[str, Any], result.data[0])
    authorize(ctx, WITHDRAWAL_ACCOUNTS, SELECT, account)
    return account


async def update_withdrawal_account(
    supabase_client: Client,
    ctx: AuthContext,
    account_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update a withdrawal account owned by the caller.

    The merged result must still satisfy the account_type field rule.
    Changing payout details clears is_verified.
    """
    existing = await get_withdrawal_account(supabase_client, ctx, account_id)
    if existing is None:
        return None

    authorize(ctx, WITHDRAWAL_ACCOUNTS, UPDATE, existing)
    validate_account_fields({**existing, **updates})

    payload: Dict[str, Any] = {**updates, "updated_at": utc_now_iso()}
    if set(updates) - {"is_active"}:
        payload["is_verified"] = False

    result = (
        supabase_client.table(WITHDRAWAL_ACCOUNTS)
        .update(payload)
        .eq("id", account_id)
        .eq("user_id", ctx.user_id)
        .execute()
    )
    if not result.data:
        return None

    logger.info(f"Withdrawal account {account_id} updated by user {ctx.user_id}")
    return cast(Dict[str, Any], result.data[0])


async def delete_withdrawal_account(
    supabase_client: Client,
    ctx: AuthContext,
    account_id: str
) -> bool:
    """
    Delete a withdrawal account owned by the caller.

    Accounts referenced by existing withdrawals cannot be removed (foreign
    key); callers should deactivate them instead. The database error
    propagates as postgrest APIError code 23503.

    Returns:
        True if a row was deleted, False if not found
    """
    existing = await get_withdrawal_account(supabase_client, ctx, account_id)
    if existing is None:
        return False

    authorize(ctx, WITHDRAWAL_ACCOUNTS, DELETE, existing)

    result = (
        supabase_client.table(WITHDRAWAL_ACCOUNTS)
        .delete()
        .eq("id", account_id)
        .eq("user_id", ctx.user_id)
        .execute()
    )
    deleted = bool(result.data)
    if deleted:
        logger.info(f"Withdrawal account {account_id} deleted by user {ctx.user_id}")
    return deleted
