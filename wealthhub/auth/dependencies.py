"""
FastAPI dependency functions for authentication and authorization.

get_authenticated_user verifies the Supabase access token (JWT Signing Keys,
ES256 via JWKS). get_auth_context adds one profiles lookup for the caller's
role and account status, producing the AuthContext every service call
receives. require_admin rejects non-admins with 403.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from jwt import PyJWKClient, decode
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from wealthhub.auth.policies import AuthContext
from wealthhub.config import settings
from wealthhub.db.client import get_supabase_client
from wealthhub.services.profile_service import get_user_role

logger = logging.getLogger(__name__)

# Caches keys and follows key rotation (cache_keys=True)
_jwks_client: PyJWKClient | None = None


@dataclass
class AuthenticatedUser:
    """
    Represents an authenticated user with their token.

    Attributes:
        user_id: The user's UUID from the JWT token's 'sub' claim
        access_token: The full JWT access token (for creating authenticated Supabase clients)
        email: The 'email' claim, when present
    """
    user_id: str
    access_token: str
    email: Optional[str] = None


def get_jwks_client() -> PyJWKClient:
    """
    Get or create the JWKS client instance.

    Raises:
        ValueError: If SUPABASE_URL is not configured
    """
    global _jwks_client

    if _jwks_client is None:
        jwks_url = settings.SUPABASE_JWKS_URL
        if not jwks_url:
            raise ValueError(
                "SUPABASE_URL is not configured. "
                "Cannot construct JWKS URL for JWT verification."
            )

        logger.info(f"Initializing JWKS client with URL: {jwks_url}")
        _jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
        )

    return _jwks_client


def _unauthorized(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "details": details}
    )


def _extract_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        logger.warning("Missing Authorization header")
        raise _unauthorized("unauthorized", "Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Invalid Authorization header format")
        raise _unauthorized("unauthorized", "Invalid Authorization header format")

    return parts[1]


def _decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature, expiry, audience and issuer of a Supabase access token.

    Raises:
        HTTPException: 401 on any verification failure
    """
    try:
        jwks_client = get_jwks_client()
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        # Supabase issuer includes the /auth/v1 path
        issuer = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1"

        payload = decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience="authenticated",
            issuer=issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
                "verify_iss": True,
            }
        )

    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized("token_expired", "Authentication token has expired")

    except PyJWKClientError as e:
        logger.error(f"JWKS client error: {str(e)}")
        raise _unauthorized("jwks_error", "Unable to verify token signature")

    except InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise _unauthorized("invalid_token", "Invalid authentication token")

    except Exception as e:
        logger.error(f"Unexpected error during token verification: {str(e)}")
        raise _unauthorized("unauthorized", "Token verification failed")

    if not payload.get("sub"):
        logger.error("Token payload missing 'sub' claim")
        raise _unauthorized("unauthorized", "Invalid token: missing user ID")

    return payload


async def get_authenticated_user(
    authorization: Annotated[str | None, Header()] = None
) -> AuthenticatedUser:
    """
    Verify the Bearer token and return the user together with the token.

    The token is needed to build a per-request Supabase client:

        supabase_client = get_supabase_client(auth_user.access_token)

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired
    """
    token = _extract_bearer(authorization)
    payload = _decode_token(token)
    user_id = str(payload["sub"])

    logger.info(f"Token verified successfully for user_id={user_id}")
    return AuthenticatedUser(user_id=user_id, access_token=token, email=payload.get("email"))


async def get_auth_context(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AuthContext:
    """
    Build the request-scoped AuthContext: identity plus role and account status.

    Raises:
        HTTPException: 500 if the role lookup fails
    """
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        role_info = await get_user_role(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Role lookup failed for user {auth_user.user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "role_lookup_error", "details": "Unable to resolve user role"}
        )

    return AuthContext(
        user_id=auth_user.user_id,
        access_token=auth_user.access_token,
        role=role_info["role"],
        account_status=role_info["account_status"],
    )


async def require_admin(
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> AuthContext:
    """
    Dependency for admin routes.

    Raises:
        HTTPException: 403 if the caller is not an admin
    """
    if not ctx.is_admin:
        logger.warning(f"Non-admin user {ctx.user_id} attempted admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": "Admin access required"}
        )
    return ctx
