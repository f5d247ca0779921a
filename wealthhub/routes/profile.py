"""
Profile API endpoints.

Owners read their profile and edit contact details. Role, KYC status and
account status are changed from the admin users tab.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, to_http_exception
from wealthhub.schemas.profile import ProfileResponse, ProfileUpdateRequest, ProfileUpdateResponse
from wealthhub.services import get_user_profile, update_user_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get user profile",
)
async def get_profile(
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> ProfileResponse:
    logger.info(f"Fetching profile for user {ctx.user_id}")
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        profile = await get_user_profile(supabase_client, ctx)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve profile from database")

    if not profile:
        raise not_found("Profile not found for this user")

    return ProfileResponse.model_validate(profile)


@router.patch(
    "",
    response_model=ProfileUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update user profile",
    description="""
    Update the caller's contact details (full_name, phone, date_of_birth,
    country). Only the provided fields are changed.
    """
)
async def update_profile(
    request: ProfileUpdateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> ProfileUpdateResponse:
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "No fields to update"}
        )

    supabase_client = get_supabase_client(ctx.access_token)

    try:
        profile = await update_user_profile(supabase_client, ctx, **updates)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update profile")

    if not profile:
        raise not_found("Profile not found for this user")

    return ProfileUpdateResponse(profile=ProfileResponse.model_validate(profile))
