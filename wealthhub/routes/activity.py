"""
Activity log endpoint: the caller's own account activity, newest first.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import to_http_exception
from wealthhub.schemas.activity import ActivityLogListResponse, ActivityLogResponse
from wealthhub.services import get_user_activity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get(
    "",
    response_model=ActivityLogListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own activity",
)
async def list_activity(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ActivityLogListResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        entries = await get_user_activity(supabase_client, ctx, limit=limit, offset=offset)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve activity")

    items = [ActivityLogResponse.model_validate(a) for a in entries]
    return ActivityLogListResponse(activity=items, count=len(items), limit=limit, offset=offset)
