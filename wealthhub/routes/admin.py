"""
Admin dashboard API endpoints.

Every route depends on require_admin (403 for non-admins). Tabs:
- summary / stats / analytics
- users: search, view, change role or account state, balance and profit adjustments
- deposits, withdrawals, kyc: list by status, view, move through their lifecycle
- referrals: list, pay bonus
- payment methods (settings tab): CRUD
- logs: admin audit trail
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from wealthhub.auth.dependencies import require_admin
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, to_http_exception
from wealthhub.schemas.activity import AdminLogListResponse, AdminLogResponse
from wealthhub.schemas.balances import (
    BalanceResponse,
    ProfitAdjustmentRequest,
    TransactionListResponse,
    TransactionResponse,
)
from wealthhub.schemas.dashboard import (
    AdminStatsResponse,
    AnalyticsResponse,
    DashboardSummaryResponse,
)
from wealthhub.schemas.deposits import (
    DepositDetailResponse,
    DepositListResponse,
    DepositResponse,
    DepositStatus,
    DepositStatusUpdateRequest,
)
from wealthhub.schemas.kyc import (
    KycDetailResponse,
    KycDocumentUrls,
    KycListResponse,
    KycResponse,
    KycReviewRequest,
    KycStatus,
)
from wealthhub.schemas.payment_methods import (
    PaymentMethodCreateRequest,
    PaymentMethodDeleteResponse,
    PaymentMethodListResponse,
    PaymentMethodResponse,
    PaymentMethodUpdateRequest,
)
from wealthhub.schemas.profile import (
    AccountStatus,
    AdminProfileUpdateRequest,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpdateResponse,
    Role,
)
from wealthhub.schemas.referrals import ReferralListResponse, ReferralResponse
from wealthhub.schemas.withdrawals import (
    WithdrawalFeeUpdateRequest,
    WithdrawalListResponse,
    WithdrawalResponse,
    WithdrawalStatus,
    WithdrawalStatusUpdateRequest,
)
from wealthhub.services import (
    adjust_profit_balance,
    admin_update_profile,
    create_payment_method,
    delete_payment_method,
    get_admin_logs,
    get_admin_stats,
    get_analytics,
    get_balance,
    get_dashboard_summary,
    get_deposit,
    get_deposit_proof_url,
    get_kyc_by_id,
    get_kyc_document_urls,
    get_user_profile,
    get_withdrawal,
    list_deposits,
    list_kyc_submissions,
    list_payment_methods,
    list_profiles,
    list_referrals,
    list_transactions,
    list_withdrawals,
    mark_bonus_paid,
    review_kyc,
    update_deposit_status,
    update_payment_method,
    update_withdrawal_fee,
    update_withdrawal_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

AdminContext = Annotated[AuthContext, Depends(require_admin)]


def _no_fields() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "invalid_request", "details": "No fields to update"}
    )


# --- Dashboard ---

@router.get(
    "/summary",
    response_model=DashboardSummaryResponse,
    summary="Dashboard summary tiles",
    description="Reads the admin_dashboard_summary view; counts are computed at read time.",
)
async def dashboard_summary(ctx: AdminContext) -> DashboardSummaryResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        summary = await get_dashboard_summary(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to load dashboard summary")
    return DashboardSummaryResponse(**summary)


@router.get("/stats", response_model=AdminStatsResponse, summary="Dashboard counters")
async def dashboard_stats(ctx: AdminContext) -> AdminStatsResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        stats = await get_admin_stats(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to load dashboard stats")
    return AdminStatsResponse(**stats)


@router.get("/analytics", response_model=AnalyticsResponse, summary="Analytics tab")
async def dashboard_analytics(ctx: AdminContext) -> AnalyticsResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        analytics = await get_analytics(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to load analytics")
    return AnalyticsResponse(**analytics)


# --- Users ---

@router.get("/users", response_model=ProfileListResponse, summary="List and search users")
async def list_users(
    ctx: AdminContext,
    search: Optional[str] = Query(None, max_length=200, description="Matches email or full name"),
    role: Optional[Role] = Query(None),
    kyc_status: Optional[KycStatus] = Query(None),
    account_status: Optional[AccountStatus] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ProfileListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        profiles = await list_profiles(
            supabase_client, ctx,
            search=search, role=role, kyc_status=kyc_status, account_status=account_status,
            limit=limit, offset=offset,
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve users")

    items = [ProfileResponse.model_validate(p) for p in profiles]
    return ProfileListResponse(profiles=items, count=len(items), limit=limit, offset=offset)


@router.get("/users/{user_id}", response_model=ProfileResponse, summary="Get a user")
async def get_user(
    user_id: Annotated[str, Path(description="User UUID")],
    ctx: AdminContext,
) -> ProfileResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        profile = await get_user_profile(supabase_client, ctx, user_id)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve user")

    if profile is None:
        raise not_found(f"User {user_id} not found")
    return ProfileResponse.model_validate(profile)


@router.patch(
    "/users/{user_id}",
    response_model=ProfileUpdateResponse,
    summary="Update a user",
    description="Change profile fields, role, KYC status or account status. Written to the admin log.",
)
async def update_user(
    user_id: Annotated[str, Path(description="User UUID")],
    request: AdminProfileUpdateRequest,
    ctx: AdminContext,
) -> ProfileUpdateResponse:
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise _no_fields()

    supabase_client = get_supabase_client(ctx.access_token)
    try:
        profile = await admin_update_profile(supabase_client, ctx, user_id, **updates)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update user")

    if profile is None:
        raise not_found(f"User {user_id} not found")
    return ProfileUpdateResponse(profile=ProfileResponse.model_validate(profile))


@router.get("/users/{user_id}/balance", response_model=BalanceResponse, summary="Get a user's balance")
async def get_user_balance(
    user_id: Annotated[str, Path(description="User UUID")],
    ctx: AdminContext,
) -> BalanceResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        balance = await get_balance(supabase_client, ctx, user_id)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve balance")
    return BalanceResponse.model_validate(balance)


@router.post(
    "/users/{user_id}/balance/profit",
    response_model=BalanceResponse,
    summary="Adjust a user's profit balance",
    description="Positive amounts credit interest (recorded as an 'interest' transaction); negative amounts remove profit.",
)
async def adjust_user_profit(
    user_id: Annotated[str, Path(description="User UUID")],
    request: ProfitAdjustmentRequest,
    ctx: AdminContext,
) -> BalanceResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        balance = await adjust_profit_balance(
            supabase_client, ctx, user_id, request.amount, note=request.note
        )
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to adjust profit balance")
    return BalanceResponse.model_validate(balance)


@router.get(
    "/users/{user_id}/transactions",
    response_model=TransactionListResponse,
    summary="List a user's transactions",
)
async def list_user_transactions(
    user_id: Annotated[str, Path(description="User UUID")],
    ctx: AdminContext,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        transactions = await list_transactions(
            supabase_client, ctx, user_id=user_id, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve transactions")

    items = [TransactionResponse.model_validate(t) for t in transactions]
    return TransactionListResponse(transactions=items, count=len(items), limit=limit, offset=offset)


# --- Deposits ---

@router.get("/deposits", response_model=DepositListResponse, summary="List deposits")
async def admin_list_deposits(
    ctx: AdminContext,
    status_filter: Optional[DepositStatus] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> DepositListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        deposits = await list_deposits(
            supabase_client, ctx, status=status_filter, user_id=user_id, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve deposits")

    items = [DepositResponse.model_validate(d) for d in deposits]
    return DepositListResponse(deposits=items, count=len(items), limit=limit, offset=offset)


@router.get("/deposits/{deposit_id}", response_model=DepositDetailResponse, summary="Get a deposit")
async def admin_get_deposit(
    deposit_id: Annotated[str, Path(description="Deposit UUID")],
    ctx: AdminContext,
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


@router.patch(
    "/deposits/{deposit_id}/status",
    response_model=DepositResponse,
    summary="Change deposit status",
    description="""
    Allowed moves: pending -> under_review/approved/rejected,
    under_review -> approved/rejected, approved -> completed.
    Completing credits the user's main balance.
    """
)
async def admin_update_deposit_status(
    deposit_id: Annotated[str, Path(description="Deposit UUID")],
    request: DepositStatusUpdateRequest,
    ctx: AdminContext,
) -> DepositResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        deposit = await update_deposit_status(
            supabase_client, ctx, deposit_id, request.status,
            admin_notes=request.admin_notes, rejection_reason=request.rejection_reason,
        )
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update deposit status")

    if deposit is None:
        raise not_found(f"Deposit {deposit_id} not found")
    return DepositResponse.model_validate(deposit)


# --- Withdrawals ---

@router.get("/withdrawals", response_model=WithdrawalListResponse, summary="List withdrawals")
async def admin_list_withdrawals(
    ctx: AdminContext,
    status_filter: Optional[WithdrawalStatus] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> WithdrawalListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        withdrawals = await list_withdrawals(
            supabase_client, ctx, status=status_filter, user_id=user_id, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawals")

    items = [WithdrawalResponse.model_validate(w) for w in withdrawals]
    return WithdrawalListResponse(withdrawals=items, count=len(items), limit=limit, offset=offset)


@router.get("/withdrawals/{withdrawal_id}", response_model=WithdrawalResponse, summary="Get a withdrawal")
async def admin_get_withdrawal(
    withdrawal_id: Annotated[str, Path(description="Withdrawal UUID")],
    ctx: AdminContext,
) -> WithdrawalResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        withdrawal = await get_withdrawal(supabase_client, ctx, withdrawal_id)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve withdrawal")

    if withdrawal is None:
        raise not_found(f"Withdrawal {withdrawal_id} not found")
    return WithdrawalResponse.model_validate(withdrawal)


@router.patch(
    "/withdrawals/{withdrawal_id}/status",
    response_model=WithdrawalResponse,
    summary="Change withdrawal status",
    description="""
    Allowed moves: pending -> approved/rejected, approved -> processing/rejected,
    processing -> completed/failed. Completing debits the user's main balance
    and fails with 400 if the balance does not cover the amount.
    """
)
async def admin_update_withdrawal_status(
    withdrawal_id: Annotated[str, Path(description="Withdrawal UUID")],
    request: WithdrawalStatusUpdateRequest,
    ctx: AdminContext,
) -> WithdrawalResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        withdrawal = await update_withdrawal_status(
            supabase_client, ctx, withdrawal_id, request.status,
            admin_notes=request.admin_notes,
            rejection_reason=request.rejection_reason,
            transaction_reference=request.transaction_reference,
        )
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update withdrawal status")

    if withdrawal is None:
        raise not_found(f"Withdrawal {withdrawal_id} not found")
    return WithdrawalResponse.model_validate(withdrawal)


@router.patch(
    "/withdrawals/{withdrawal_id}/fee",
    response_model=WithdrawalResponse,
    summary="Change withdrawal fee",
    description="The fee must not exceed the amount; net_amount is recomputed by the database.",
)
async def admin_update_withdrawal_fee(
    withdrawal_id: Annotated[str, Path(description="Withdrawal UUID")],
    request: WithdrawalFeeUpdateRequest,
    ctx: AdminContext,
) -> WithdrawalResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        withdrawal = await update_withdrawal_fee(supabase_client, ctx, withdrawal_id, request.fee)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update withdrawal fee")

    if withdrawal is None:
        raise not_found(f"Withdrawal {withdrawal_id} not found")
    return WithdrawalResponse.model_validate(withdrawal)


# --- KYC ---

@router.get("/kyc", response_model=KycListResponse, summary="List KYC submissions")
async def admin_list_kyc(
    ctx: AdminContext,
    status_filter: Optional[KycStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> KycListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        submissions = await list_kyc_submissions(
            supabase_client, ctx, status=status_filter, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve KYC submissions")

    items = [KycResponse.model_validate(k) for k in submissions]
    return KycListResponse(submissions=items, count=len(items), limit=limit, offset=offset)


@router.get("/kyc/{kyc_id}", response_model=KycDetailResponse, summary="Get a KYC submission")
async def admin_get_kyc(
    kyc_id: Annotated[str, Path(description="KYC submission UUID")],
    ctx: AdminContext,
) -> KycDetailResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        record = await get_kyc_by_id(supabase_client, ctx, kyc_id)
        if record is None:
            raise not_found(f"KYC submission {kyc_id} not found")
        urls = get_kyc_document_urls(supabase_client, record)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve KYC submission")

    return KycDetailResponse(kyc=KycResponse.model_validate(record), documents=KycDocumentUrls(**urls))


@router.patch(
    "/kyc/{kyc_id}/status",
    response_model=KycResponse,
    summary="Review a KYC submission",
    description="The user's profile kyc_status follows through a database trigger.",
)
async def admin_review_kyc(
    kyc_id: Annotated[str, Path(description="KYC submission UUID")],
    request: KycReviewRequest,
    ctx: AdminContext,
) -> KycResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        record = await review_kyc(
            supabase_client, ctx, kyc_id, request.status,
            admin_notes=request.admin_notes, rejection_reason=request.rejection_reason,
        )
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to review KYC submission")

    if record is None:
        raise not_found(f"KYC submission {kyc_id} not found")
    return KycResponse.model_validate(record)


# --- Referrals ---

@router.get("/referrals", response_model=ReferralListResponse, summary="List referrals")
async def admin_list_referrals(
    ctx: AdminContext,
    bonus_paid: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ReferralListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        referrals = await list_referrals(
            supabase_client, ctx, bonus_paid=bonus_paid, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve referrals")

    items = [ReferralResponse.model_validate(r) for r in referrals]
    return ReferralListResponse(referrals=items, count=len(items), limit=limit, offset=offset)


@router.post(
    "/referrals/{referral_id}/pay",
    response_model=ReferralResponse,
    summary="Pay a referral bonus",
    description="Marks the bonus paid and credits the referrer's profit balance.",
)
async def admin_pay_referral(
    referral_id: Annotated[str, Path(description="Referral UUID")],
    ctx: AdminContext,
) -> ReferralResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        referral = await mark_bonus_paid(supabase_client, ctx, referral_id)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to pay referral bonus")

    if referral is None:
        raise not_found(f"Referral {referral_id} not found")
    return ReferralResponse.model_validate(referral)


# --- Deposit payment methods ---

@router.get("/payment-methods", response_model=PaymentMethodListResponse, summary="List payment methods")
async def admin_list_payment_methods(ctx: AdminContext) -> PaymentMethodListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        methods = await list_payment_methods(supabase_client, ctx, include_inactive=True)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve payment methods")

    items = [PaymentMethodResponse.model_validate(m) for m in methods]
    return PaymentMethodListResponse(payment_methods=items, count=len(items))


@router.post(
    "/payment-methods",
    response_model=PaymentMethodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a payment method",
)
async def admin_create_payment_method(
    request: PaymentMethodCreateRequest,
    ctx: AdminContext,
) -> PaymentMethodResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        method = await create_payment_method(
            supabase_client, ctx, **request.model_dump(exclude_none=True)
        )
    except Exception as e:
        raise to_http_exception(e, "create_error", "Failed to create payment method")
    return PaymentMethodResponse.model_validate(method)


@router.patch(
    "/payment-methods/{method_id}",
    response_model=PaymentMethodResponse,
    summary="Update a payment method",
)
async def admin_update_payment_method(
    method_id: Annotated[str, Path(description="Payment method UUID")],
    request: PaymentMethodUpdateRequest,
    ctx: AdminContext,
) -> PaymentMethodResponse:
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise _no_fields()

    supabase_client = get_supabase_client(ctx.access_token)
    try:
        method = await update_payment_method(supabase_client, ctx, method_id, **updates)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update payment method")

    if method is None:
        raise not_found(f"Payment method {method_id} not found")
    return PaymentMethodResponse.model_validate(method)


@router.delete(
    "/payment-methods/{method_id}",
    response_model=PaymentMethodDeleteResponse,
    summary="Delete a payment method",
)
async def admin_delete_payment_method(
    method_id: Annotated[str, Path(description="Payment method UUID")],
    ctx: AdminContext,
) -> PaymentMethodDeleteResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        deleted = await delete_payment_method(supabase_client, ctx, method_id)
    except Exception as e:
        raise to_http_exception(e, "delete_error", "Failed to delete payment method")

    if not deleted:
        raise not_found(f"Payment method {method_id} not found")
    return PaymentMethodDeleteResponse(payment_method_id=method_id)


# --- Audit ---

@router.get("/logs", response_model=AdminLogListResponse, summary="Admin audit log")
async def admin_list_logs(
    ctx: AdminContext,
    table_name: Optional[str] = Query(None, description="Only entries for this table"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> AdminLogListResponse:
    supabase_client = get_supabase_client(ctx.access_token)
    try:
        logs = await get_admin_logs(
            supabase_client, ctx, table_name=table_name, limit=limit, offset=offset
        )
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve admin logs")

    items = [AdminLogResponse.model_validate(entry) for entry in logs]
    return AdminLogListResponse(logs=items, count=len(items), limit=limit, offset=offset)
