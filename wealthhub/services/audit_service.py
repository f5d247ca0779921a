"""
Audit trail service.

Two append-only tables:
- activity_logs: what a user did (signup, deposit request, KYC submission...)
- admin_logs: what an admin changed (status decisions, balance adjustments...)
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import INSERT, AuthContext, authorize, scope_query
from wealthhub.utils.constants import ACTIVITY_LOGS, ADMIN_LOGS

logger = logging.getLogger(__name__)


async def log_activity(
    supabase_client: Client,
    ctx: AuthContext,
    action: str,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    device: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Append an activity log row for the caller.

    Activity logging never fails the operation that triggered it; errors
    are logged and None is returned.
    """
    row: Dict[str, Any] = {
        "user_id": ctx.user_id,
        "action": action,
        "description": description,
        "metadata": metadata or {},
    }
    if device:
        for key in ("device_name", "device_type", "browser", "ip_address", "location"):
            if device.get(key) is not None:
                row[key] = device[key]

    try:
        authorize(ctx, ACTIVITY_LOGS, INSERT, row)
        result = supabase_client.table(ACTIVITY_LOGS).insert(row).execute()
    except Exception as e:
        logger.warning(f"Failed to record activity '{action}' for user {ctx.user_id}: {e}")
        return None

    if not result.data:
        return None
    return cast(Dict[str, Any], result.data[0])


async def get_user_activity(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    List activity log entries, newest first.

    Non-admin callers only ever see their own entries; `user_id` lets an
    admin narrow the list to one user.
    """
    query = supabase_client.table(ACTIVITY_LOGS).select("*")
    query = scope_query(query, ctx, ACTIVITY_LOGS)
    if user_id and ctx.is_admin:
        query = query.eq("user_id", user_id)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def log_admin_action(
    supabase_client: Client,
    ctx: AuthContext,
    action: str,
    table_name: str,
    record_id: Optional[str],
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Append an admin log row.

    Unlike activity logging this is part of the audited operation: a
    failure propagates to the caller.
    """
    row = {
        "admin_id": ctx.user_id,
        "action": action,
        "table_name": table_name,
        "record_id": record_id,
        "changes": changes,
    }
    authorize(ctx, ADMIN_LOGS, INSERT, row)

    result = supabase_client.table(ADMIN_LOGS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to write admin log: no data returned")

    logger.info(f"Admin {ctx.user_id} {action} on {table_name} {record_id}")
    return cast(Dict[str, Any], result.data[0])


async def get_admin_logs(
    supabase_client: Client,
    ctx: AuthContext,
    table_name: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List admin log entries, newest first (admins only)."""
    query = scope_query(supabase_client.table(ADMIN_LOGS).select("*"), ctx, ADMIN_LOGS)
    if table_name:
        query = query.eq("table_name", table_name)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])
