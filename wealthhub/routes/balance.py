"""
Balance and transaction history endpoints (read-only for users).
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import to_http_exception
from wealthhub.schemas.balances import (
    BalanceResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionType,
)
from wealthhub.services import get_balance, list_transactions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["balance"])


@router.get(
    "/balance",
    response_model=BalanceResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own balance",
    description="Main and profit balances plus lifetime deposit/withdrawal totals. Zero if no activity yet.",
)
async def get_own_balance(
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> BalanceResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        balance = await get_balance(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve balance")

    return BalanceResponse.model_validate(balance)


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own transactions",
)
async def list_own_transactions(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        transactions = await list_transactions(
            supabase_client, ctx, transaction_type=transaction_type, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve transactions")

    items = [TransactionResponse.model_validate(t) for t in transactions]
    return TransactionListResponse(transactions=items, count=len(items), limit=limit, offset=offset)
