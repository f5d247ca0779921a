"""
Service layer for the Wealth Hub backend.

Plain async functions that take a Supabase client and the caller's
AuthContext, apply the authorization policies, and read or write rows.
Routes translate their exceptions into HTTP errors.
"""

from .audit_service import get_admin_logs, get_user_activity, log_activity, log_admin_action
from .balance_service import (
    InsufficientBalance,
    adjust_profit_balance,
    credit_bonus,
    credit_deposit,
    debit_withdrawal,
    get_balance,
    get_or_create_balance,
)
from .dashboard_service import get_admin_stats, get_analytics, get_dashboard_summary
from .deposit_service import (
    attach_deposit_proof,
    create_deposit,
    get_deposit,
    get_deposit_proof_url,
    list_deposits,
    update_deposit_status,
)
from .kyc_service import (
    attach_kyc_document,
    get_kyc_by_id,
    get_kyc_document_urls,
    get_own_kyc,
    list_kyc_submissions,
    review_kyc,
    submit_kyc,
    update_own_kyc,
)
from .lifecycle import ConcurrentModification, InvalidTransition
from .payment_method_service import (
    create_payment_method,
    delete_payment_method,
    get_payment_method,
    list_payment_methods,
    update_payment_method,
)
from .profile_service import (
    admin_update_profile,
    get_user_profile,
    get_user_role,
    has_role,
    list_profiles,
    update_user_profile,
)
from .referral_service import create_referral, list_referrals, mark_bonus_paid
from .signup_service import AuthenticationFailed, NotAnAdmin, admin_login, login, signup
from .storage import delete_document, get_document_url, upload_document
from .transaction_service import list_transactions, record_transaction
from .withdrawal_account_service import (
    create_withdrawal_account,
    delete_withdrawal_account,
    get_withdrawal_account,
    list_withdrawal_accounts,
    update_withdrawal_account,
)
from .withdrawal_service import (
    create_withdrawal,
    get_withdrawal,
    list_withdrawals,
    update_withdrawal_fee,
    update_withdrawal_status,
)

__all__ = [
    "log_activity",
    "get_user_activity",
    "log_admin_action",
    "get_admin_logs",
    "InsufficientBalance",
    "get_balance",
    "get_or_create_balance",
    "credit_deposit",
    "debit_withdrawal",
    "adjust_profit_balance",
    "credit_bonus",
    "get_dashboard_summary",
    "get_admin_stats",
    "get_analytics",
    "create_deposit",
    "list_deposits",
    "get_deposit",
    "attach_deposit_proof",
    "get_deposit_proof_url",
    "update_deposit_status",
    "submit_kyc",
    "get_own_kyc",
    "get_kyc_by_id",
    "update_own_kyc",
    "attach_kyc_document",
    "list_kyc_submissions",
    "review_kyc",
    "get_kyc_document_urls",
    "InvalidTransition",
    "ConcurrentModification",
    "list_payment_methods",
    "get_payment_method",
    "create_payment_method",
    "update_payment_method",
    "delete_payment_method",
    "get_user_role",
    "admin_update_profile",
    "has_role",
    "get_user_profile",
    "update_user_profile",
    "list_profiles",
    "create_referral",
    "list_referrals",
    "mark_bonus_paid",
    "AuthenticationFailed",
    "NotAnAdmin",
    "signup",
    "login",
    "admin_login",
    "upload_document",
    "get_document_url",
    "delete_document",
    "record_transaction",
    "list_transactions",
    "create_withdrawal_account",
    "list_withdrawal_accounts",
    "get_withdrawal_account",
    "update_withdrawal_account",
    "delete_withdrawal_account",
    "create_withdrawal",
    "list_withdrawals",
    "get_withdrawal",
    "update_withdrawal_status",
    "update_withdrawal_fee",
]
