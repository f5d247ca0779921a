"""
Tests for the service-layer authorization policies.

Tests cover:
- Owner / admin / status-gated rules per table and operation
- scope_query narrowing reads to the caller's rows
- Profile updates of admin-only fields
"""

import pytest
from unittest.mock import MagicMock

from wealthhub.auth.policies import (
    DELETE,
    INSERT,
    POLICIES,
    SELECT,
    UPDATE,
    AuthContext,
    PolicyDenied,
    authorize,
    ensure_profile_update_allowed,
    is_allowed,
    require_active_account,
    require_admin_context,
    scope_query,
)

USER = AuthContext(user_id="user-1", access_token="t")
OTHER = AuthContext(user_id="user-2", access_token="t")
ADMIN = AuthContext(user_id="admin-1", access_token="t", role="admin")
SUPPORT = AuthContext(user_id="support-1", access_token="t", role="support")


class TestOwnerRules:
    """Owner-scoped tables."""

    @pytest.mark.parametrize("table", ["deposits", "withdrawals", "kyc_documents", "account_balances", "transactions"])
    def test_owner_and_admin_can_read(self, table):
        row = {"user_id": "user-1", "status": "pending"}
        assert is_allowed(USER, table, SELECT, row)
        assert is_allowed(ADMIN, table, SELECT, row)
        assert not is_allowed(OTHER, table, SELECT, row)

    def test_support_role_has_no_admin_rights(self):
        row = {"user_id": "user-1"}
        assert not is_allowed(SUPPORT, "deposits", SELECT, row)
        assert not is_allowed(SUPPORT, "admin_logs", SELECT, {"admin_id": "x"})

    def test_deposit_insert_requires_pending_status(self):
        assert is_allowed(USER, "deposits", INSERT, {"user_id": "user-1", "status": "pending"})
        assert not is_allowed(USER, "deposits", INSERT, {"user_id": "user-1", "status": "completed"})

    def test_deposit_insert_for_someone_else_denied(self):
        assert not is_allowed(USER, "deposits", INSERT, {"user_id": "user-2", "status": "pending"})

    def test_withdrawal_insert_requires_pending_status(self):
        assert not is_allowed(USER, "withdrawals", INSERT, {"user_id": "user-1", "status": "approved"})

    def test_withdrawal_update_is_admin_only(self):
        row = {"user_id": "user-1", "status": "pending"}
        assert not is_allowed(USER, "withdrawals", UPDATE, row)
        assert is_allowed(ADMIN, "withdrawals", UPDATE, row)

    def test_deposit_owner_update_only_while_pending(self):
        assert is_allowed(USER, "deposits", UPDATE, {"user_id": "user-1", "status": "pending"})
        assert not is_allowed(USER, "deposits", UPDATE, {"user_id": "user-1", "status": "approved"})
        assert is_allowed(ADMIN, "deposits", UPDATE, {"user_id": "user-1", "status": "approved"})

    def test_kyc_owner_update_while_pending_or_rejected(self):
        assert is_allowed(USER, "kyc_documents", UPDATE, {"user_id": "user-1", "status": "pending"})
        assert is_allowed(USER, "kyc_documents", UPDATE, {"user_id": "user-1", "status": "rejected"})
        assert not is_allowed(USER, "kyc_documents", UPDATE, {"user_id": "user-1", "status": "approved"})
        assert not is_allowed(USER, "kyc_documents", UPDATE, {"user_id": "user-1", "status": "under_review"})

    def test_balances_are_written_by_admins_only(self):
        row = {"user_id": "user-1"}
        assert not is_allowed(USER, "account_balances", UPDATE, row)
        assert not is_allowed(USER, "account_balances", INSERT, row)
        assert is_allowed(ADMIN, "account_balances", UPDATE, row)

    def test_withdrawal_account_delete_owner_only(self):
        row = {"user_id": "user-1"}
        assert is_allowed(USER, "withdrawal_accounts", DELETE, row)
        assert not is_allowed(ADMIN, "withdrawal_accounts", DELETE, row)

    def test_referral_visible_to_both_parties(self):
        row = {"referrer_id": "user-1", "referred_id": "user-2"}
        assert is_allowed(USER, "referrals", SELECT, row)
        assert is_allowed(OTHER, "referrals", SELECT, row)
        assert not is_allowed(AuthContext(user_id="user-3", access_token="t"), "referrals", SELECT, row)


class TestPaymentMethodRules:

    def test_active_methods_visible_to_everyone(self):
        assert is_allowed(USER, "deposit_payment_methods", SELECT, {"is_active": True})
        assert not is_allowed(USER, "deposit_payment_methods", SELECT, {"is_active": False})
        assert is_allowed(ADMIN, "deposit_payment_methods", SELECT, {"is_active": False})

    def test_management_is_admin_only(self):
        for operation in (INSERT, UPDATE, DELETE):
            assert not is_allowed(USER, "deposit_payment_methods", operation, {"is_active": True})
            assert is_allowed(ADMIN, "deposit_payment_methods", operation, {"is_active": True})


class TestAuthorize:

    def test_authorize_raises_policy_denied(self):
        with pytest.raises(PolicyDenied) as exc_info:
            authorize(OTHER, "deposits", SELECT, {"user_id": "user-1"})
        assert exc_info.value.table == "deposits"
        assert exc_info.value.operation == SELECT

    def test_unknown_table_is_an_error(self):
        with pytest.raises(ValueError):
            is_allowed(USER, "budgets", SELECT, {})

    def test_unknown_operation_is_an_error(self):
        with pytest.raises(ValueError):
            is_allowed(USER, "deposits", "truncate", {})

    def test_missing_operation_denies(self):
        # transactions have no DELETE rule for anyone
        assert not is_allowed(ADMIN, "transactions", DELETE, {"user_id": "user-1"})

    def test_every_table_defines_select(self):
        for table, policy in POLICIES.items():
            assert policy.rule_for(SELECT).name != "nobody", table

    def test_require_admin_context(self):
        require_admin_context(ADMIN)
        with pytest.raises(PolicyDenied):
            require_admin_context(USER)

    def test_require_active_account(self):
        require_active_account(USER)
        suspended = AuthContext(user_id="user-1", access_token="t", account_status="suspended")
        with pytest.raises(PolicyDenied) as exc_info:
            require_active_account(suspended)
        assert "suspended" in exc_info.value.reason


class TestScopeQuery:

    def test_admin_query_untouched(self):
        query = MagicMock()
        assert scope_query(query, ADMIN, "deposits") is query
        query.eq.assert_not_called()

    def test_owner_query_filtered_by_owner_column(self):
        query = MagicMock()
        scope_query(query, USER, "deposits")
        query.eq.assert_called_once_with("user_id", "user-1")

    def test_multi_owner_table_uses_or_filter(self):
        query = MagicMock()
        scope_query(query, USER, "referrals")
        query.or_.assert_called_once_with("referrer_id.eq.user-1,referred_id.eq.user-1")

    def test_payment_methods_filtered_to_active_for_users(self):
        query = MagicMock()
        scope_query(query, USER, "deposit_payment_methods")
        query.eq.assert_called_once_with("is_active", True)

    def test_admin_only_table_raises_for_users(self):
        with pytest.raises(PolicyDenied):
            scope_query(MagicMock(), USER, "admin_logs")


class TestProfileUpdates:

    def test_owner_may_update_contact_fields(self):
        ensure_profile_update_allowed(USER, "user-1", {"phone": "+1 555 0100"})

    def test_owner_may_not_change_role(self):
        with pytest.raises(PolicyDenied) as exc_info:
            ensure_profile_update_allowed(USER, "user-1", {"role": "admin"})
        assert "role" in exc_info.value.reason

    def test_owner_may_not_update_other_profile(self):
        with pytest.raises(PolicyDenied):
            ensure_profile_update_allowed(USER, "user-2", {"phone": "x"})

    def test_admin_may_change_protected_fields(self):
        ensure_profile_update_allowed(ADMIN, "user-1", {"role": "support", "account_status": "suspended"})
