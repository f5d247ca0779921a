"""
Signup and login flows against Supabase Auth.

Signup runs in three steps:
1. auth.sign_up with the profile fields as user metadata (the
   on_auth_user_created trigger creates the profiles row from them)
2. best-effort update of the profile with phone, date of birth, country
   and a generated referral code
3. best-effort referral insert when a referral code was supplied

Steps 2 and 3 use the service role client because the new user has no
session until the email is confirmed. Their failures are logged and never
fail the signup.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from supabase import Client

from wealthhub.config import settings
from wealthhub.services.profile_service import find_profile_by_referral_code, has_role
from wealthhub.services.referral_service import create_referral, generate_referral_code
from wealthhub.utils.constants import PROFILES, ROLE_ADMIN

logger = logging.getLogger(__name__)


class AuthenticationFailed(Exception):
    """Raised when Supabase Auth rejects a sign up or sign in."""


class NotAnAdmin(PermissionError):
    """Raised by admin login when the credentials belong to a non-admin."""


def _session_payload(auth_response: Any) -> Dict[str, Any]:
    user = getattr(auth_response, "user", None)
    session = getattr(auth_response, "session", None)
    return {
        "user_id": str(user.id) if user else None,
        "email": getattr(user, "email", None) if user else None,
        "access_token": getattr(session, "access_token", None) if session else None,
        "refresh_token": getattr(session, "refresh_token", None) if session else None,
        "expires_in": getattr(session, "expires_in", None) if session else None,
    }


def _complete_profile(
    service_client: Client,
    user_id: str,
    phone: Optional[str],
    date_of_birth: Optional[str],
    country: Optional[str],
) -> Optional[str]:
    """Fill the fields the trigger does not set. Returns the referral code."""
    referral_code = generate_referral_code()
    updates: Dict[str, Any] = {"referral_code": referral_code}
    if phone:
        updates["phone"] = phone
    if date_of_birth:
        updates["date_of_birth"] = date_of_birth
    if country:
        updates["country"] = country

    try:
        service_client.table(PROFILES).update(updates).eq("id", user_id).execute()
    except Exception as e:
        logger.warning(f"Profile completion failed for new user {user_id}: {e}")
        return None
    return referral_code


async def _record_referral(
    service_client: Client,
    user_id: str,
    referral_code: str,
    bonus_amount: Decimal,
) -> Optional[Dict[str, Any]]:
    try:
        referrer = await find_profile_by_referral_code(service_client, referral_code)
        if referrer is None:
            logger.info(f"Referral code not found during signup of user {user_id}")
            return None
        return await create_referral(service_client, str(referrer["id"]), user_id, bonus_amount)
    except Exception as e:
        logger.warning(f"Referral insert failed for new user {user_id}: {e}")
        return None


async def signup(
    anon_client: Client,
    email: str,
    password: str,
    full_name: str,
    phone: Optional[str] = None,
    date_of_birth: Optional[str] = None,
    country: Optional[str] = None,
    referral_code: Optional[str] = None,
    accepted_terms: bool = False,
    service_client: Optional[Client] = None,
) -> Dict[str, Any]:
    """
    Register a new user.

    Args:
        anon_client: Supabase client with the publishable key and no session
        service_client: Service role client for the best-effort steps; when
            None those steps are skipped with a warning

    Returns:
        Dict with user_id, email, referral_code, referral_recorded and the
        session tokens (None until the email is confirmed)

    Raises:
        ValueError: Terms not accepted
        AuthenticationFailed: Supabase Auth rejected the sign up
    """
    if not accepted_terms:
        raise ValueError("You must agree to the Terms & Conditions")

    credentials: Dict[str, Any] = {
        "email": email,
        "password": password,
        "options": {
            "data": {
                "full_name": full_name,
                "phone": phone,
                "date_of_birth": date_of_birth,
                "country": country,
            },
        },
    }
    if settings.SIGNUP_REDIRECT_URL:
        credentials["options"]["email_redirect_to"] = settings.SIGNUP_REDIRECT_URL

    try:
        response = anon_client.auth.sign_up(credentials)
    except Exception as e:
        logger.warning(f"Sign up rejected by Supabase Auth: {e}")
        raise AuthenticationFailed(str(e)) from e

    payload = _session_payload(response)
    user_id = payload["user_id"]
    if not user_id:
        raise AuthenticationFailed("Sign up returned no user")

    logger.info(f"New user signed up: {user_id}")

    payload["referral_code"] = None
    payload["referral_recorded"] = False

    if service_client is None:
        logger.warning(f"No service role client; skipping profile completion for user {user_id}")
        return payload

    payload["referral_code"] = _complete_profile(
        service_client, user_id, phone, date_of_birth, country
    )

    if referral_code and referral_code.strip():
        referral = await _record_referral(
            service_client, user_id, referral_code, settings.REFERRAL_BONUS_AMOUNT
        )
        payload["referral_recorded"] = referral is not None

    return payload


async def login(
    anon_client: Client,
    email: str,
    password: str
) -> Dict[str, Any]:
    """
    Sign in with email and password.

    Raises:
        AuthenticationFailed: Invalid credentials or unconfirmed email
    """
    try:
        response = anon_client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.info(f"Login failed: {e}")
        raise AuthenticationFailed(str(e)) from e

    payload = _session_payload(response)
    if not payload["access_token"]:
        raise AuthenticationFailed("Login returned no session")
    return payload


async def admin_login(
    anon_client: Client,
    email: str,
    password: str
) -> Dict[str, Any]:
    """
    Sign in and require the admin role.

    A non-admin session is signed out straight away.

    Raises:
        AuthenticationFailed: Invalid credentials
        NotAnAdmin: Valid credentials without the admin role
    """
    payload = await login(anon_client, email, password)

    is_admin = await has_role(anon_client, payload["user_id"], ROLE_ADMIN)
    if not is_admin:
        logger.warning(f"Admin login refused for non-admin user {payload['user_id']}")
        anon_client.auth.sign_out()
        raise NotAnAdmin("Admin access required")

    logger.info(f"Admin login for user {payload['user_id']}")
    return payload
