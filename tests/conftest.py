"""
Pytest configuration for Wealth Hub backend tests.

Sets up test environment and global fixtures.
"""
import os
from contextlib import ExitStack
from unittest.mock import patch

import pytest

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")

from fake_supabase import FakeSupabase  # noqa: E402

from wealthhub.auth.policies import AuthContext  # noqa: E402

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_ID = "99999999-9999-9999-9999-999999999999"


@pytest.fixture
def db():
    """Empty in-memory database with three profiles: a user, another user and an admin."""
    fake = FakeSupabase()
    fake.seed("profiles", id=USER_ID, email="user@example.com", full_name="Test User")
    fake.seed("profiles", id=OTHER_USER_ID, email="other@example.com", full_name="Other User")
    fake.seed("profiles", id=ADMIN_ID, email="admin@example.com", full_name="Admin", role="admin")
    return fake


@pytest.fixture
def user_ctx():
    return AuthContext(user_id=USER_ID, access_token="user-token")


@pytest.fixture
def other_ctx():
    return AuthContext(user_id=OTHER_USER_ID, access_token="other-token")


@pytest.fixture
def admin_ctx():
    return AuthContext(user_id=ADMIN_ID, access_token="admin-token", role="admin")


ROUTE_MODULES = (
    "activity", "admin", "auth", "balance", "deposits", "kyc", "payment_methods",
    "profile", "referrals", "withdrawal_accounts", "withdrawals",
)


@pytest.fixture
def api(db):
    """TestClient whose routes all talk to the in-memory database."""
    from fastapi.testclient import TestClient

    from wealthhub.main import app

    with ExitStack() as stack:
        for module in ROUTE_MODULES:
            stack.enter_context(
                patch(f"wealthhub.routes.{module}.get_supabase_client", return_value=db)
            )
        yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Override get_auth_context so requests run as the given AuthContext."""
    from wealthhub.auth.dependencies import get_auth_context
    from wealthhub.main import app

    def _login(ctx):
        app.dependency_overrides[get_auth_context] = lambda: ctx
        return ctx

    yield _login
    app.dependency_overrides.clear()
