"""
Supabase client factory.

This module provides Supabase clients for the three situations the backend
meets:

1. Per-request clients carrying the caller's JWT. Row Level Security still
   applies in the database; the service layer adds its own explicit checks
   on top (see wealthhub/auth/policies.py).
2. An anonymous client (publishable key, no session) used for sign-up and
   sign-in calls against Supabase Auth.
3. A service_role client used ONLY by the signup flow to finish the new
   user's profile and referral rows before that user has a session.
"""

import logging

from supabase import Client, create_client

from wealthhub.config import settings

logger = logging.getLogger(__name__)


def get_supabase_client(access_token: str) -> Client:
    """
    Create an authenticated Supabase client for a specific user.

    Args:
        access_token: The user's JWT access token from Supabase Auth.
                     This is the token verified in wealthhub/auth/dependencies.py.

    Returns:
        An authenticated Supabase client that enforces RLS.

    Example:
        >>> client = get_supabase_client(auth_user.access_token)
        >>> result = client.table("deposits").select("*").execute()
    """
    client: Client = create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )

    # The token's 'sub' claim is what auth.uid() returns inside RLS policies
    client.auth.set_session(access_token, access_token)

    logger.debug("Created authenticated Supabase client with user token (RLS enforced)")

    return client


def get_anon_client() -> Client:
    """
    Create a Supabase client without a user session.

    Used for Supabase Auth calls (sign_up, sign_in_with_password) that
    happen before the caller holds a token.
    """
    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )


def get_service_role_client() -> Client:
    """
    Create a Supabase client with service_role privileges.

    WARNING: This bypasses RLS. It is used only by the signup flow
    (wealthhub/services/signup_service.py) for the best-effort profile
    update and referral insert. NEVER use it for user-initiated reads.

    Raises:
        ValueError: If SUPABASE_SECRET_KEY is not configured.
    """
    if not settings.SUPABASE_SECRET_KEY:
        raise ValueError(
            "SUPABASE_SECRET_KEY is not configured; "
            "service role operations are unavailable."
        )

    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_SECRET_KEY
    )
