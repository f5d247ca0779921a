"""
Withdrawal account API endpoints.

Payout destinations (bank, crypto wallet, PayPal) owned by the caller.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, to_http_exception
from wealthhub.schemas.withdrawal_accounts import (
    WithdrawalAccountCreateRequest,
    WithdrawalAccountDeleteResponse,
    WithdrawalAccountListResponse,
    WithdrawalAccountResponse,
    WithdrawalAccountUpdateRequest,
)
from wealthhub.services import (
    create_withdrawal_account,
    delete_withdrawal_account,
    get_withdrawal_account,
    list_withdrawal_accounts,
    update_withdrawal_account,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/withdrawal-accounts", tags=["withdrawal-accounts"])


@router.get(
    "",
    response_model=WithdrawalAccountListResponse,
    status_code=status.HTTP_200_OK,
    summary="List withdrawal accounts",
)
async def list_accounts(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    active_only: bool = Query(False, description="Only return active accounts"),
) -> WithdrawalAccountListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        accounts = await list_withdrawal_accounts(supabase_client, ctx, active_only=active_only)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawal accounts")

    items = [WithdrawalAccountResponse.model_validate(a) for a in accounts]
    return WithdrawalAccountListResponse(accounts=items, count=len(items))


@router.post(
    "",
    response_model=WithdrawalAccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a withdrawal account",
    description="""
    Required fields depend on account_type:
    - bank: account_number, account_holder_name
    - crypto: crypto_address, crypto_type
    - paypal: paypal_email
    """
)
async def create_account(
    request: WithdrawalAccountCreateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalAccountResponse:
    logger.info(f"Creating {request.account_type} withdrawal account for user {ctx.user_id}")
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        account = await create_withdrawal_account(
            supabase_client, ctx, **request.model_dump(mode="json", exclude_none=True)
        )
    except Exception as e:
        raise to_http_exception(e, "create_error", "Failed to create withdrawal account")

    return WithdrawalAccountResponse.model_validate(account)


@router.get(
    "/{account_id}",
    response_model=WithdrawalAccountResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a withdrawal account",
)
async def get_account(
    account_id: Annotated[str, Path(description="Withdrawal account UUID")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalAccountResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        account = await get_withdrawal_account(supabase_client, ctx, account_id)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawal account")

    if account is None:
        raise not_found(f"Withdrawal account {account_id} not found")
    return WithdrawalAccountResponse.model_validate(account)


@router.patch(
    "/{account_id}",
    response_model=WithdrawalAccountResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a withdrawal account",
    description="Changing payout details clears is_verified.",
)
async def update_account(
    account_id: Annotated[str, Path(description="Withdrawal account UUID")],
    request: WithdrawalAccountUpdateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalAccountResponse:
    updates = request.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "No fields to update"}
        )

    supabase_client = get_supabase_client(ctx.access_token)

    try:
        account = await update_withdrawal_account(supabase_client, ctx, account_id, **updates)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update withdrawal account")

    if account is None:
        raise not_found(f"Withdrawal account {account_id} not found")
    return WithdrawalAccountResponse.model_validate(account)


@router.delete(
    "/{account_id}",
    response_model=WithdrawalAccountDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete a withdrawal account",
    description="Accounts used by existing withdrawals cannot be deleted (409); deactivate them instead.",
)
async def delete_account(
    account_id: Annotated[str, Path(description="Withdrawal account UUID")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> WithdrawalAccountDeleteResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        deleted = await delete_withdrawal_account(supabase_client, ctx, account_id)
    except Exception as e:
        raise to_http_exception(e, "delete_error", "Failed to delete withdrawal account")

    if not deleted:
        raise not_found(f"Withdrawal account {account_id} not found")
    return WithdrawalAccountDeleteResponse(account_id=account_id)
