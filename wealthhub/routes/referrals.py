"""
Referral endpoint: referrals where the caller is the referrer or the referred user.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import to_http_exception
from wealthhub.schemas.referrals import ReferralListResponse, ReferralResponse
from wealthhub.services import list_referrals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get(
    "",
    response_model=ReferralListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own referrals",
)
async def list_own_referrals(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ReferralListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        referrals = await list_referrals(supabase_client, ctx, limit=limit, offset=offset)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve referrals")

    items = [ReferralResponse.model_validate(r) for r in referrals]
    return ReferralListResponse(referrals=items, count=len(items), limit=limit, offset=offset)
