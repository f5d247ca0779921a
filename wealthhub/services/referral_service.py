"""
Referral service.

A referral links the user who shared a code (referrer) with the user who
signed up with it (referred). Rows are written once, during signup, with
the service role client; admins later mark the bonus paid, which credits
the referrer's profit balance.
"""

import logging
import secrets
import string
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    SELECT,
    UPDATE,
    AuthContext,
    authorize,
    require_admin_context,
    scope_query,
)
from wealthhub.services.audit_service import log_admin_action
from wealthhub.services.balance_service import credit_bonus
from wealthhub.services.lifecycle import ConcurrentModification, utc_now_iso
from wealthhub.utils.constants import REFERRALS
from wealthhub.utils.money import to_db, to_decimal

logger = logging.getLogger(__name__)

REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """Random upper-case code; uniqueness is enforced by the database."""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


async def create_referral(
    service_client: Client,
    referrer_id: str,
    referred_id: str,
    bonus_amount: Decimal,
) -> Dict[str, Any]:
    """
    Insert a referral row (signup flow, service role client).

    Raises:
        ValueError: Self-referral or negative bonus
        postgrest.exceptions.APIError: 23505 if the user was already referred
    """
    if referrer_id == referred_id:
        raise ValueError("A user cannot refer themselves")
    if bonus_amount < 0:
        raise ValueError("Referral bonus cannot be negative")

    row = {
        "referrer_id": referrer_id,
        "referred_id": referred_id,
        "bonus_amount": to_db(bonus_amount),
        "bonus_paid": False,
    }
    result = service_client.table(REFERRALS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create referral: no data returned")

    logger.info(f"Referral recorded: {referrer_id} -> {referred_id}")
    return cast(Dict[str, Any], result.data[0])


async def list_referrals(
    supabase_client: Client,
    ctx: AuthContext,
    bonus_paid: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    List referrals visible to the caller, newest first.

    Users see referrals where they are the referrer or the referred user.
    """
    query = scope_query(supabase_client.table(REFERRALS).select("*"), ctx, REFERRALS)
    if bonus_paid is not None:
        query = query.eq("bonus_paid", bonus_paid)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def get_referral(
    supabase_client: Client,
    ctx: AuthContext,
    referral_id: str
) -> Optional[Dict[str, Any]]:
    query = scope_query(supabase_client.table(REFERRALS).select("*"), ctx, REFERRALS)
    result = query.eq("id", referral_id).execute()
    if not result.data:
        return None

    referral = cast(Dict[str, Any], result.data[0])
    authorize(ctx, REFERRALS, SELECT, referral)
    return referral


async def mark_bonus_paid(
    supabase_client: Client,
    ctx: AuthContext,
    referral_id: str
) -> Optional[Dict[str, Any]]:
    """
    Pay a referral bonus (admins only).

    Flips bonus_paid only while it is still false, then credits the
    referrer's profit balance. A failed credit flips the flag back.

    Raises:
        ValueError: Bonus already paid
        ConcurrentModification: Another admin paid it first
    """
    require_admin_context(ctx)

    referral = await get_referral(supabase_client, ctx, referral_id)
    if referral is None:
        return None

    authorize(ctx, REFERRALS, UPDATE, referral)
    if referral.get("bonus_paid"):
        raise ValueError("Referral bonus has already been paid")

    result = (
        supabase_client.table(REFERRALS)
        .update({"bonus_paid": True, "paid_at": utc_now_iso()})
        .eq("id", referral_id)
        .eq("bonus_paid", False)
        .execute()
    )
    if not result.data:
        raise ConcurrentModification(REFERRALS, referral_id, "unpaid")
    updated = cast(Dict[str, Any], result.data[0])

    amount = to_decimal(referral.get("bonus_amount"))
    if amount > 0:
        try:
            await credit_bonus(
                supabase_client, ctx, str(referral["referrer_id"]), amount, referral_id
            )
        except Exception as e:
            logger.error(f"Bonus credit failed for referral {referral_id}, reverting: {e}")
            supabase_client.table(REFERRALS).update(
                {"bonus_paid": False, "paid_at": None}
            ).eq("id", referral_id).execute()
            raise

    await log_admin_action(
        supabase_client, ctx, "referral_bonus_paid", REFERRALS, referral_id,
        {"referrer_id": str(referral["referrer_id"]), "bonus_amount": to_db(amount)},
    )
    return updated
