"""
Withdrawal API endpoints (user side).

Users request payouts to one of their active withdrawal accounts and
follow their status. Admin decisions live in wealthhub/routes/admin.py.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, to_http_exception
from wealthhub.schemas.withdrawals import (
    WithdrawalCreateRequest,
    WithdrawalListResponse,
    WithdrawalResponse,
    WithdrawalStatus,
)
from wealthhub.services import create_withdrawal, get_withdrawal, list_withdrawals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post(
    "",
    response_model=WithdrawalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a withdrawal",
    description="""
    Request a payout. The processing fee is a configured percentage of the
    amount; net_amount = amount - fee. The amount must be covered by the
    current main balance (400 otherwise).
    """
)
async def create_new_withdrawal(
    request: WithdrawalCreateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        withdrawal = await create_withdrawal(
            supabase_client, ctx,
            withdrawal_account_id=request.withdrawal_account_id,
            amount=request.amount,
            currency=request.currency,
        )
    except Exception as e:
        raise to_http_exception(e, "create_error", "Failed to create withdrawal")

    return WithdrawalResponse.model_validate(withdrawal)


@router.get(
    "",
    response_model=WithdrawalListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own withdrawals",
)
async def list_own_withdrawals(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    status_filter: Optional[WithdrawalStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> WithdrawalListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        withdrawals = await list_withdrawals(
            supabase_client, ctx, status=status_filter, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawals")

    items = [WithdrawalResponse.model_validate(w) for w in withdrawals]
    return WithdrawalListResponse(withdrawals=items, count=len(items), limit=limit, offset=offset)


@router.get(
    "/{withdrawal_id}",
    response_model=WithdrawalResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a withdrawal",
)
async def get_one_withdrawal(
    withdrawal_id: Annotated[str, Path(description="Withdrawal UUID")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        withdrawal = await get_withdrawal(supabase_client, ctx, withdrawal_id)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawal")

    if withdrawal is None:
        raise not_found(f"Withdrawal {withdrawal_id} not found")
    return WithdrawalResponse.model_validate(withdrawal)
