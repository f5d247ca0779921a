"""
Auth API endpoints.

- POST /auth/signup       Register (Supabase Auth sign up + profile/referral completion)
- POST /auth/login        Email/password sign in
- POST /auth/admin/login  Sign in that only succeeds for admins
- GET  /auth/me           Identity, role and profile of the caller
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from supabase import Client

from wealthhub.auth.dependencies import (
    AuthenticatedUser,
    get_auth_context,
    get_authenticated_user,
)
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_anon_client, get_service_role_client, get_supabase_client
from wealthhub.routes.errors import to_http_exception
from wealthhub.schemas.auth import (
    AuthMeResponse,
    LoginRequest,
    SessionResponse,
    SignupRequest,
    SignupResponse,
)
from wealthhub.schemas.profile import ProfileResponse
from wealthhub.services import (
    AuthenticationFailed,
    NotAnAdmin,
    admin_login,
    get_user_profile,
    login,
    signup,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _optional_service_client() -> Optional[Client]:
    try:
        return get_service_role_client()
    except ValueError as e:
        logger.warning(f"Signup will skip profile completion: {e}")
        return None


def _auth_failed(e: AuthenticationFailed) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "authentication_failed", "details": str(e)}
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create an account with Supabase Auth.

    - Terms & Conditions must be accepted
    - Profile details and the user's own referral code are filled in best-effort
    - A referral is recorded best-effort when a valid referral code is supplied;
      an unknown code does not fail the signup
    """
)
async def signup_user(request: SignupRequest) -> SignupResponse:
    logger.info("Signup requested")

    try:
        result = await signup(
            get_anon_client(),
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            phone=request.phone,
            date_of_birth=request.date_of_birth,
            country=request.country,
            referral_code=request.referral_code,
            accepted_terms=request.accepted_terms,
            service_client=_optional_service_client(),
        )
    except AuthenticationFailed as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "signup_failed", "details": str(e)}
        )
    except Exception as e:
        raise to_http_exception(e, "signup_error", "Failed to create account")

    return SignupResponse(
        user_id=result["user_id"],
        email=result.get("email"),
        referral_code=result.get("referral_code"),
        referral_recorded=bool(result.get("referral_recorded")),
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in",
)
async def login_user(request: LoginRequest) -> SessionResponse:
    try:
        session = await login(get_anon_client(), request.email, request.password)
    except AuthenticationFailed as e:
        raise _auth_failed(e)
    except Exception as e:
        raise to_http_exception(e, "login_error", "Failed to sign in")

    return SessionResponse(**session)


@router.post(
    "/admin/login",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Admin sign in",
    description="""
    Sign in and require the admin role (has_role RPC).

    Non-admin credentials are signed out immediately and rejected with 403.
    """
)
async def login_admin(request: LoginRequest) -> SessionResponse:
    try:
        session = await admin_login(get_anon_client(), request.email, request.password)
    except AuthenticationFailed as e:
        raise _auth_failed(e)
    except NotAnAdmin as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": str(e)}
        )
    except Exception as e:
        raise to_http_exception(e, "login_error", "Failed to sign in")

    return SessionResponse(**session)


@router.get(
    "/me",
    response_model=AuthMeResponse,
    status_code=status.HTTP_200_OK,
    summary="Get authenticated user identity",
    description="""
    Identity of the caller for session hydration: user_id and email from
    the JWT, the role used for authorization, and the profile row.
    """
)
async def get_auth_me(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthMeResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        profile = await get_user_profile(supabase_client, ctx)
    except Exception as e:
        logger.error(f"Error in get_auth_me for user_id={ctx.user_id}: {e}")
        raise to_http_exception(e, "auth_me_failed", "Failed to load identity")

    return AuthMeResponse(
        user_id=ctx.user_id,
        email=auth_user.email,
        role=ctx.role,
        account_status=ctx.account_status,
        profile=ProfileResponse.model_validate(profile) if profile else None,
    )
