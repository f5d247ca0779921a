"""
Deposit API endpoints (user side).

Users open deposit requests, attach a proof of payment while pending and
follow their status. Admin decisions live in wealthhub/routes/admin.py.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, read_upload, to_http_exception
from wealthhub.schemas.deposits import (
    DepositCreateRequest,
    DepositDetailResponse,
    DepositListResponse,
    DepositResponse,
    DepositStatus,
)
from wealthhub.services import (
    attach_deposit_proof,
    create_deposit,
    get_deposit,
    get_deposit_proof_url,
    list_deposits,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deposits", tags=["deposits"])


@router.post(
    "",
    response_model=DepositResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a deposit",
    description="""
    Open a deposit request. It starts as 'pending' and is credited to the
    main balance once an admin completes it. Suspended or closed accounts
    cannot open new requests (403).
    """
)
async def create_new_deposit(
    request: DepositCreateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> DepositResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        deposit = await create_deposit(
            supabase_client, ctx,
            amount=request.amount,
            currency=request.currency,
            payment_method=request.payment_method,
            reference_number=request.reference_number,
        )
    except Exception as e:
        raise to_http_exception(e, "create_error", "Failed to create deposit")

    return DepositResponse.model_validate(deposit)


@router.get(
    "",
    response_model=DepositListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own deposits",
)
async def list_own_deposits(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    status_filter: Optional[DepositStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of deposits to return"),
    offset: int = Query(0, ge=0, description="Number of deposits to skip for pagination"),
) -> DepositListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        deposits = await list_deposits(
            supabase_client, ctx, status=status_filter, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve deposits")

    items = [DepositResponse.model_validate(d) for d in deposits]
    return DepositListResponse(deposits=items, count=len(items), limit=limit, offset=offset)


@router.get(
    "/{deposit_id}",
    response_model=DepositDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a deposit",
)
async def get_one_deposit(
    deposit_id: Annotated[str, Path(description="Deposit UUID")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> DepositDetailResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        deposit = await get_deposit(supabase_client, ctx, deposit_id)
        if deposit is None:
            raise not_found(f"Deposit {deposit_id} not found")
        proof_url = get_deposit_proof_url(supabase_client, deposit)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve deposit")

    return DepositDetailResponse(deposit=DepositResponse.model_validate(deposit), proof_url=proof_url)


@router.post(
    "/{deposit_id}/proof",
    response_model=DepositResponse,
    status_code=status.HTTP_200_OK,
    summary="Attach a proof of payment",
    description="Upload to the private deposit-proofs bucket. Only while the deposit is pending.",
)
async def upload_deposit_proof(
    deposit_id: Annotated[str, Path(description="Deposit UUID")],
    file: Annotated[UploadFile, File(description="Proof of payment image or PDF")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> DepositResponse:
    file_bytes = await read_upload(file)
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        deposit = await attach_deposit_proof(
            supabase_client, ctx, deposit_id, file_bytes,
            filename=file.filename or "proof",
            content_type=file.content_type,
        )
    except Exception as e:
        raise to_http_exception(e, "upload_error", "Failed to attach proof")

    if deposit is None:
        raise not_found(f"Deposit {deposit_id} not found")
    return DepositResponse.model_validate(deposit)
