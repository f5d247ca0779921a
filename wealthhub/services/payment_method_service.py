"""
Deposit payment method service.

Admin-managed list of ways users can send money in (bank transfer details,
crypto addresses with QR codes, ...). Users only ever see active methods.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    DELETE,
    INSERT,
    SELECT,
    UPDATE,
    AuthContext,
    authorize,
    require_admin_context,
    scope_query,
)
from wealthhub.services.audit_service import log_admin_action
from wealthhub.services.lifecycle import utc_now_iso
from wealthhub.utils.constants import DEPOSIT_PAYMENT_METHODS, PAYMENT_METHOD_KINDS

logger = logging.getLogger(__name__)


async def list_payment_methods(
    supabase_client: Client,
    ctx: AuthContext,
    include_inactive: bool = False,
) -> List[Dict[str, Any]]:
    """
    List deposit payment methods.

    Non-admins always get active methods only; admins get all of them when
    include_inactive is set.
    """
    query = scope_query(
        supabase_client.table(DEPOSIT_PAYMENT_METHODS).select("*"), ctx, DEPOSIT_PAYMENT_METHODS
    )
    if not (include_inactive and ctx.is_admin):
        query = query.eq("is_active", True)

    result = query.order("created_at", desc=False).execute()
    return cast(List[Dict[str, Any]], result.data or [])


async def get_payment_method(
    supabase_client: Client,
    ctx: AuthContext,
    method_id: str
) -> Optional[Dict[str, Any]]:
    query = scope_query(
        supabase_client.table(DEPOSIT_PAYMENT_METHODS).select("*"), ctx, DEPOSIT_PAYMENT_METHODS
    )
    result = query.eq("id", method_id).execute()
    if not result.data:
        return None

    method = cast(Dict[str, Any], result.data[0])
    authorize(ctx, DEPOSIT_PAYMENT_METHODS, SELECT, method)
    return method


async def create_payment_method(
    supabase_client: Client,
    ctx: AuthContext,
    **fields: Any
) -> Dict[str, Any]:
    """
    Add a deposit payment method (admins only).

    Raises:
        ValueError: Unknown payment_method kind
    """
    require_admin_context(ctx)

    if fields.get("payment_method") not in PAYMENT_METHOD_KINDS:
        raise ValueError(
            f"Invalid payment_method '{fields.get('payment_method')}'. "
            f"Must be one of: {', '.join(PAYMENT_METHOD_KINDS)}"
        )

    row = {k: v for k, v in fields.items() if v is not None}
    row["created_by"] = ctx.user_id
    row["updated_by"] = ctx.user_id
    authorize(ctx, DEPOSIT_PAYMENT_METHODS, INSERT, row)

    result = supabase_client.table(DEPOSIT_PAYMENT_METHODS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create payment method: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    await log_admin_action(
        supabase_client, ctx, "payment_method_created", DEPOSIT_PAYMENT_METHODS,
        str(created.get("id")), {"payment_method": row["payment_method"]},
    )
    return created


async def update_payment_method(
    supabase_client: Client,
    ctx: AuthContext,
    method_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """Update a deposit payment method (admins only)."""
    require_admin_context(ctx)

    existing = await get_payment_method(supabase_client, ctx, method_id)
    if existing is None:
        return None
    authorize(ctx, DEPOSIT_PAYMENT_METHODS, UPDATE, existing)

    kind = updates.get("payment_method")
    if kind is not None and kind not in PAYMENT_METHOD_KINDS:
        raise ValueError(f"Invalid payment_method '{kind}'")

    payload = {**updates, "updated_by": ctx.user_id, "updated_at": utc_now_iso()}
    result = (
        supabase_client.table(DEPOSIT_PAYMENT_METHODS)
        .update(payload)
        .eq("id", method_id)
        .execute()
    )
    if not result.data:
        return None

    await log_admin_action(
        supabase_client, ctx, "payment_method_updated", DEPOSIT_PAYMENT_METHODS,
        method_id, {"fields": sorted(updates.keys())},
    )
    return cast(Dict[str, Any], result.data[0])


async def delete_payment_method(
    supabase_client: Client,
    ctx: AuthContext,
    method_id: str
) -> bool:
    """Remove a deposit payment method (admins only). Returns False if not found."""
    require_admin_context(ctx)

    existing = await get_payment_method(supabase_client, ctx, method_id)
    if existing is None:
        return False
    authorize(ctx, DEPOSIT_PAYMENT_METHODS, DELETE, existing)

    result = supabase_client.table(DEPOSIT_PAYMENT_METHODS).delete().eq("id", method_id).execute()
    deleted = bool(result.data)
    if deleted:
        await log_admin_action(
            supabase_client, ctx, "payment_method_deleted", DEPOSIT_PAYMENT_METHODS,
            method_id, {"payment_method": existing.get("payment_method")},
        )
    return deleted
