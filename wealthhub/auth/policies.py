"""
Service-layer authorization policies.

The database keeps its Row Level Security policies (supabase/migrations),
but the backend no longer relies on them alone: every service function
checks the caller's request-scoped AuthContext against the table below
before it reads or writes a row.

Each table maps SELECT/INSERT/UPDATE/DELETE to a Rule. A rule passes when
one of its enabled clauses matches:

- admin:         caller's role is 'admin'
- owner:         one of the table's owner columns equals the caller's user_id
                 (optionally only while the row's status is in owner_statuses)
- public_filter: row[column] == value for any authenticated caller

Reads use scope_query() so that a non-admin asking for someone else's row
gets zero rows, the same answer RLS gives.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from wealthhub.utils.constants import (
    ACCOUNT_BALANCES,
    ACTIVITY_LOGS,
    ADMIN_LOGS,
    DASHBOARD_SUMMARY_VIEW,
    DEPOSIT_PAYMENT_METHODS,
    DEPOSITS,
    KYC_DOCUMENTS,
    PROFILES,
    REFERRALS,
    ROLE_ADMIN,
    STATUS_PENDING,
    TRANSACTIONS,
    WITHDRAWAL_ACCOUNTS,
    WITHDRAWALS,
)

SELECT = "select"
INSERT = "insert"
UPDATE = "update"
DELETE = "delete"
OPERATIONS = (SELECT, INSERT, UPDATE, DELETE)

# Profile columns only an admin may change
PROTECTED_PROFILE_FIELDS = frozenset({"role", "kyc_status", "account_status", "email", "referral_code"})


class PolicyDenied(PermissionError):
    """Raised when the caller is not allowed to perform an operation on a table."""

    def __init__(self, table: str, operation: str, reason: Optional[str] = None):
        self.table = table
        self.operation = operation
        self.reason = reason or f"Not allowed to {operation} {table}"
        super().__init__(self.reason)


@dataclass(frozen=True)
class AuthContext:
    """
    Request-scoped identity and role of the caller.

    Built once per request by wealthhub.auth.dependencies.get_auth_context
    and passed explicitly to every service call.
    """
    user_id: str
    access_token: str
    role: str = "user"
    account_status: str = "active"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_active(self) -> bool:
        return self.account_status == "active"


@dataclass(frozen=True)
class Rule:
    name: str
    admin: bool = False
    owner: bool = False
    owner_statuses: Optional[Tuple[str, ...]] = None
    public_filter: Optional[Tuple[str, Any]] = None

    def allows(
        self,
        ctx: AuthContext,
        row: Optional[Mapping[str, Any]],
        owner_columns: Tuple[str, ...],
    ) -> bool:
        if self.admin and ctx.is_admin:
            return True

        if row is None:
            return False

        if self.owner and _is_owner(ctx, row, owner_columns):
            if self.owner_statuses is None:
                return True
            status = row.get("status") or STATUS_PENDING
            if status in self.owner_statuses:
                return True

        if self.public_filter is not None:
            column, value = self.public_filter
            if row.get(column) == value:
                return True

        return False


def _is_owner(ctx: AuthContext, row: Mapping[str, Any], owner_columns: Tuple[str, ...]) -> bool:
    for column in owner_columns:
        value = row.get(column)
        if value is not None and str(value) == ctx.user_id:
            return True
    return False


NOBODY = Rule("nobody")
ADMIN = Rule("admin", admin=True)
OWNER = Rule("owner", owner=True)
OWNER_OR_ADMIN = Rule("owner_or_admin", admin=True, owner=True)
OWNER_PENDING = Rule("owner_pending", owner=True, owner_statuses=(STATUS_PENDING,))
OWNER_PENDING_OR_ADMIN = Rule(
    "owner_pending_or_admin",
    admin=True,
    owner=True,
    owner_statuses=(STATUS_PENDING,),
)
OWNER_EDITABLE_OR_ADMIN = Rule(
    "owner_editable_or_admin",
    admin=True,
    owner=True,
    owner_statuses=(STATUS_PENDING, "rejected"),
)
ACTIVE_OR_ADMIN = Rule("active_or_admin", admin=True, public_filter=("is_active", True))


@dataclass(frozen=True)
class TablePolicy:
    owner_columns: Tuple[str, ...]
    rules: Dict[str, Rule] = field(default_factory=dict)

    def rule_for(self, operation: str) -> Rule:
        return self.rules.get(operation, NOBODY)


POLICIES: Dict[str, TablePolicy] = {
    PROFILES: TablePolicy(
        owner_columns=("id",),
        # Profile rows are created by the on_auth_user_created trigger
        rules={SELECT: OWNER_OR_ADMIN, UPDATE: OWNER_OR_ADMIN},
    ),
    KYC_DOCUMENTS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: OWNER_PENDING, UPDATE: OWNER_EDITABLE_OR_ADMIN},
    ),
    WITHDRAWAL_ACCOUNTS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: OWNER, UPDATE: OWNER, DELETE: OWNER},
    ),
    DEPOSITS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: OWNER_PENDING, UPDATE: OWNER_PENDING_OR_ADMIN},
    ),
    WITHDRAWALS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: OWNER_PENDING, UPDATE: ADMIN},
    ),
    ACCOUNT_BALANCES: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: ADMIN, UPDATE: ADMIN},
    ),
    TRANSACTIONS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: ADMIN, UPDATE: ADMIN},
    ),
    REFERRALS: TablePolicy(
        owner_columns=("referrer_id", "referred_id"),
        # Referral rows are inserted by the signup flow with the service role
        rules={SELECT: OWNER_OR_ADMIN, UPDATE: ADMIN},
    ),
    DEPOSIT_PAYMENT_METHODS: TablePolicy(
        owner_columns=(),
        rules={SELECT: ACTIVE_OR_ADMIN, INSERT: ADMIN, UPDATE: ADMIN, DELETE: ADMIN},
    ),
    ACTIVITY_LOGS: TablePolicy(
        owner_columns=("user_id",),
        rules={SELECT: OWNER_OR_ADMIN, INSERT: OWNER},
    ),
    ADMIN_LOGS: TablePolicy(
        owner_columns=("admin_id",),
        rules={SELECT: ADMIN, INSERT: ADMIN},
    ),
    DASHBOARD_SUMMARY_VIEW: TablePolicy(
        owner_columns=(),
        rules={SELECT: ADMIN},
    ),
}


def get_policy(table: str) -> TablePolicy:
    try:
        return POLICIES[table]
    except KeyError:
        raise ValueError(f"No authorization policy defined for table '{table}'")


def is_allowed(
    ctx: AuthContext,
    table: str,
    operation: str,
    row: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Evaluate the policy for (table, operation) against a row.

    For INSERT the row is the new row (WITH CHECK); for SELECT, UPDATE and
    DELETE it is the existing row (USING).
    """
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation '{operation}'")
    policy = get_policy(table)
    return policy.rule_for(operation).allows(ctx, row, policy.owner_columns)


def authorize(
    ctx: AuthContext,
    table: str,
    operation: str,
    row: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Raise PolicyDenied unless the caller may perform `operation` on `row`.
    """
    if not is_allowed(ctx, table, operation, row):
        raise PolicyDenied(table, operation)


def require_admin_context(ctx: AuthContext) -> None:
    """Raise PolicyDenied unless the caller holds the admin role."""
    if not ctx.is_admin:
        raise PolicyDenied("admin", "access", "Admin access required")


def require_active_account(ctx: AuthContext) -> None:
    """Suspended or closed accounts cannot open new financial requests."""
    if not ctx.is_active:
        raise PolicyDenied(
            "account",
            "access",
            f"Account is {ctx.account_status}; new requests are not allowed",
        )


def scope_query(query: Any, ctx: AuthContext, table: str) -> Any:
    """
    Narrow a Supabase select builder to the rows the caller may read.

    Admins get the query back untouched. Owners get an equality filter on
    the owner column(s). Tables readable only by admins raise PolicyDenied
    instead of silently returning nothing.
    """
    policy = get_policy(table)
    rule = policy.rule_for(SELECT)

    if rule.admin and ctx.is_admin:
        return query

    if rule.owner and policy.owner_columns:
        if len(policy.owner_columns) == 1:
            return query.eq(policy.owner_columns[0], ctx.user_id)
        clauses = ",".join(f"{column}.eq.{ctx.user_id}" for column in policy.owner_columns)
        return query.or_(clauses)

    if rule.public_filter is not None:
        column, value = rule.public_filter
        return query.eq(column, value)

    raise PolicyDenied(table, SELECT)


def ensure_profile_update_allowed(
    ctx: AuthContext,
    profile_id: str,
    updates: Mapping[str, Any],
) -> None:
    """
    Owners may edit their own contact details but never their role or
    verification/account state.
    """
    authorize(ctx, PROFILES, UPDATE, {"id": profile_id})

    if ctx.is_admin:
        return

    protected = sorted(PROTECTED_PROFILE_FIELDS.intersection(updates))
    if protected:
        raise PolicyDenied(
            PROFILES,
            UPDATE,
            f"Fields can only be changed by an admin: {', '.join(protected)}",
        )
