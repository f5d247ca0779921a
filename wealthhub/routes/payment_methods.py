"""
Deposit payment methods endpoint: the active ways to send money in.

Admin CRUD lives in wealthhub/routes/admin.py.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import to_http_exception
from wealthhub.schemas.payment_methods import PaymentMethodListResponse, PaymentMethodResponse
from wealthhub.services import list_payment_methods

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])


@router.get(
    "",
    response_model=PaymentMethodListResponse,
    status_code=status.HTTP_200_OK,
    summary="List active deposit payment methods",
)
async def list_active_payment_methods(
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> PaymentMethodListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        methods = await list_payment_methods(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve payment methods")

    items = [PaymentMethodResponse.model_validate(m) for m in methods]
    return PaymentMethodListResponse(payment_methods=items, count=len(items))
