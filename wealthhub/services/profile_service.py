"""
User profile service.

Profiles are 1:1 with auth.users (profiles.id = auth uid). Rows are created
by the on_auth_user_created trigger; this module reads and updates them.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    SELECT,
    AuthContext,
    authorize,
    ensure_profile_update_allowed,
    require_admin_context,
    scope_query,
)
from wealthhub.services.audit_service import log_admin_action
from wealthhub.services.lifecycle import utc_now_iso
from wealthhub.utils.constants import PROFILES, ROLE_USER

logger = logging.getLogger(__name__)


async def get_user_role(
    supabase_client: Client,
    user_id: str
) -> Dict[str, str]:
    """
    Look up the caller's role and account status.

    Used once per request to build the AuthContext. A missing profile is
    treated as a plain active user.
    """
    result = (
        supabase_client.table(PROFILES)
        .select("role, account_status")
        .eq("id", user_id)
        .execute()
    )

    if not result.data:
        logger.warning(f"No profile row for user {user_id}; defaulting role to '{ROLE_USER}'")
        return {"role": ROLE_USER, "account_status": "active"}

    row = cast(Dict[str, Any], result.data[0])
    return {
        "role": row.get("role") or ROLE_USER,
        "account_status": row.get("account_status") or "active",
    }


async def has_role(
    supabase_client: Client,
    user_id: str,
    role: str
) -> bool:
    """
    Check a role through the has_role(_user_id, _role) database function.
    """
    result = supabase_client.rpc("has_role", {"_user_id": user_id, "_role": role}).execute()
    return bool(result.data)


async def get_user_profile(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Fetch a profile.

    Args:
        supabase_client: Authenticated Supabase client
        ctx: Caller's authorization context
        user_id: Profile to fetch (defaults to the caller)

    Returns:
        The profile dict, or None if not found or not visible to the caller
    """
    target_id = user_id or ctx.user_id
    logger.debug(f"Fetching profile {target_id} for user {ctx.user_id}")

    query = scope_query(supabase_client.table(PROFILES).select("*"), ctx, PROFILES)
    result = query.eq("id", target_id).execute()

    if not result.data:
        logger.warning(f"Profile {target_id} not found for user {ctx.user_id}")
        return None

    profile = cast(Dict[str, Any], result.data[0])
    authorize(ctx, PROFILES, SELECT, profile)
    return profile


async def update_user_profile(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update profile fields.

    Owners may change contact details only; role, kyc_status and
    account_status are admin-only (PolicyDenied otherwise).

    Returns:
        The updated profile, or None if no row matched
    """
    target_id = user_id or ctx.user_id
    ensure_profile_update_allowed(ctx, target_id, updates)

    logger.info(f"Updating profile {target_id} by user {ctx.user_id}: {sorted(updates.keys())}")

    payload = {**updates, "updated_at": utc_now_iso()}
    result = (
        supabase_client.table(PROFILES)
        .update(payload)
        .eq("id", target_id)
        .execute()
    )

    if not result.data:
        return None

    return cast(Dict[str, Any], result.data[0])


def _quoted_ilike_pattern(search: str) -> str:
    """
    Contains-pattern for a PostgREST or= filter.

    The value is double quoted so commas, dots and parentheses in user
    input stay part of the value instead of starting new conditions.
    """
    escaped = search.replace("\\", "\\\\").replace('"', '\\"')
    return f'"%{escaped}%"'


async def list_profiles(
    supabase_client: Client,
    ctx: AuthContext,
    search: Optional[str] = None,
    role: Optional[str] = None,
    kyc_status: Optional[str] = None,
    account_status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> List[Dict[str, Any]]:
    """
    List profiles for the admin users tab.

    Non-admins only ever get their own row back.
    """
    query = scope_query(supabase_client.table(PROFILES).select("*"), ctx, PROFILES)

    if search:
        pattern = _quoted_ilike_pattern(search)
        query = query.or_(f"email.ilike.{pattern},full_name.ilike.{pattern}")
    if role:
        query = query.eq("role", role)
    if kyc_status:
        query = query.eq("kyc_status", kyc_status)
    if account_status:
        query = query.eq("account_status", account_status)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def find_profile_by_referral_code(
    supabase_client: Client,
    referral_code: str
) -> Optional[Dict[str, Any]]:
    """
    Case-insensitive lookup of the profile owning a referral code.

    Called with the service role client during signup, before the new user
    has a session.
    """
    result = (
        supabase_client.table(PROFILES)
        .select("id, referral_code")
        .ilike("referral_code", referral_code.strip().upper())
        .limit(1)
        .execute()
    )

    if not result.data:
        return None
    return cast(Dict[str, Any], result.data[0])


async def admin_update_profile(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Users tab: change any profile field, including role and account state.

    The previous values of the changed fields go into the admin log.
    """
    require_admin_context(ctx)

    before = await get_user_profile(supabase_client, ctx, user_id)
    if before is None:
        return None

    updated = await update_user_profile(supabase_client, ctx, user_id, **updates)
    if updated is None:
        return None

    await log_admin_action(
        supabase_client, ctx, "user_updated", PROFILES, user_id,
        {name: {"from": before.get(name), "to": value} for name, value in updates.items()},
    )
    return updated
