"""
Enumerated value sets shared by schemas, services and authorization policies.

Every tuple here matches a CHECK constraint in supabase/migrations.
"""

# --- Table names ---

PROFILES = "profiles"
KYC_DOCUMENTS = "kyc_documents"
WITHDRAWAL_ACCOUNTS = "withdrawal_accounts"
DEPOSITS = "deposits"
WITHDRAWALS = "withdrawals"
ACCOUNT_BALANCES = "account_balances"
TRANSACTIONS = "transactions"
REFERRALS = "referrals"
DEPOSIT_PAYMENT_METHODS = "deposit_payment_methods"
ACTIVITY_LOGS = "activity_logs"
ADMIN_LOGS = "admin_logs"
DASHBOARD_SUMMARY_VIEW = "admin_dashboard_summary"

# --- Roles and account states ---

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPPORT = "support"
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPPORT)

ACCOUNT_STATUSES = ("active", "suspended", "closed")

# --- Status sets ---

STATUS_PENDING = "pending"

KYC_STATUSES = ("pending", "under_review", "approved", "rejected")
DEPOSIT_STATUSES = ("pending", "under_review", "approved", "rejected", "completed")
WITHDRAWAL_STATUSES = ("pending", "approved", "rejected", "processing", "completed", "failed")
TRANSACTION_STATUSES = ("pending", "completed", "failed")

# --- Other enums ---

ID_TYPES = ("passport", "driver_license", "national_id", "government_id")
CURRENCIES = ("USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF")
DEPOSIT_PAYMENT_METHODS_ACCEPTED = ("bank_transfer", "credit_card", "crypto", "wire")
WITHDRAWAL_ACCOUNT_TYPES = ("bank", "crypto", "paypal")
CRYPTO_TYPES = ("bitcoin", "ethereum", "litecoin", "ripple", "solana", "usdc", "tether")
TRANSACTION_TYPES = ("deposit", "withdrawal", "fee", "interest", "bonus")
PAYMENT_METHOD_KINDS = ("bank_transfer", "bitcoin", "ethereum", "crypto_other", "credit_card")
DEVICE_TYPES = ("mobile", "tablet", "desktop")

# Fields a withdrawal account must carry for each account_type
WITHDRAWAL_ACCOUNT_REQUIRED_FIELDS = {
    "bank": ("account_number", "account_holder_name"),
    "crypto": ("crypto_address", "crypto_type"),
    "paypal": ("paypal_email",),
}

# Postgres SQLSTATE codes surfaced by PostgREST
PG_UNIQUE_VIOLATION = "23505"
PG_CHECK_VIOLATION = "23514"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_INSUFFICIENT_PRIVILEGE = "42501"
