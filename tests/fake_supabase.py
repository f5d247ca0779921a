"""
In-memory stand-in for the supabase-py Client used by service tests.

Supports the query builder calls the services make (select with
count="exact", eq/neq/in_/ilike/or_ filters, order, range, limit, insert,
update, delete, rpc) and mirrors the parts of supabase/migrations that the
services depend on:

- column defaults, ids and created_at/updated_at timestamps
- UNIQUE constraints (APIError 23505) and CHECK constraints (APIError 23514)
- withdrawals.net_amount as a generated column (writing it fails)
- the sync_profile_kyc_status trigger
- the admin_dashboard_summary view
- has_role() RPC

Row Level Security is not simulated; the service layer policies are what
the tests exercise.
"""

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "profiles": {
        "role": "user",
        "kyc_status": "pending",
        "account_status": "active",
        "full_name": None,
        "phone": None,
        "date_of_birth": None,
        "country": None,
        "referral_code": None,
    },
    "account_balances": {
        "main_balance": "0.00",
        "profit_balance": "0.00",
        "total_deposited": "0.00",
        "total_withdrawn": "0.00",
    },
    "kyc_documents": {
        "status": "pending",
        "id_front_url": None,
        "id_back_url": None,
        "selfie_url": None,
        "rejection_reason": None,
        "admin_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
    },
    "withdrawal_accounts": {"is_active": True, "is_verified": False},
    "deposits": {
        "currency": "USD",
        "status": "pending",
        "proof_image_url": None,
        "rejection_reason": None,
        "admin_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
    },
    "withdrawals": {
        "currency": "USD",
        "fee": "0.00",
        "status": "pending",
        "rejection_reason": None,
        "admin_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
        "transaction_reference": None,
        "approved_at": None,
        "completed_at": None,
    },
    "transactions": {"currency": "USD", "status": "completed", "deposit_id": None, "withdrawal_id": None},
    "referrals": {"bonus_amount": "0.00", "bonus_paid": False, "paid_at": None},
    "deposit_payment_methods": {"is_active": True},
    "activity_logs": {"metadata": {}},
    "admin_logs": {"changes": {}},
}

UNIQUE: Dict[str, Tuple[str, ...]] = {
    "profiles": ("id", "email", "referral_code"),
    "account_balances": ("user_id",),
    "kyc_documents": ("user_id",),
    "referrals": ("referred_id",),
}

# Tables without an updated_at column
APPEND_ONLY = {"transactions", "referrals", "activity_logs", "admin_logs"}

GENERATED = {"withdrawals": ("net_amount",)}

ACCOUNT_REQUIRED = {
    "bank": ("account_number", "account_holder_name"),
    "crypto": ("crypto_address", "crypto_type"),
    "paypal": ("paypal_email",),
}


def _dec(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else "0"))


def _check_violation(message: str) -> APIError:
    return APIError({"code": "23514", "message": message, "details": None, "hint": None})


def _check_row(table: str, row: Dict[str, Any]) -> None:
    if table in ("deposits", "withdrawals") and _dec(row.get("amount")) <= 0:
        raise _check_violation(f'new row for relation "{table}" violates check constraint "{table}_amount_check"')
    if table == "withdrawals":
        if _dec(row.get("fee")) < 0 or _dec(row.get("fee")) > _dec(row.get("amount")):
            raise _check_violation('new row for relation "withdrawals" violates check constraint "withdrawals_fee_within_amount"')
    if table == "account_balances":
        for name in ("main_balance", "profit_balance", "total_deposited", "total_withdrawn"):
            if _dec(row.get(name)) < 0:
                raise _check_violation(f'new row for relation "account_balances" violates check constraint "{name}_check"')
    if table == "withdrawal_accounts":
        required = ACCOUNT_REQUIRED.get(row.get("account_type"))
        if required is None or any(row.get(name) is None for name in required):
            raise _check_violation('new row for relation "withdrawal_accounts" violates check constraint "withdrawal_accounts_required_fields"')
    if table == "referrals":
        if row.get("referrer_id") == row.get("referred_id"):
            raise _check_violation('new row for relation "referrals" violates check constraint "referrals_not_self"')
        if _dec(row.get("bonus_amount")) < 0:
            raise _check_violation('new row for relation "referrals" violates check constraint "referrals_bonus_amount_check"')


def _matches(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, bool) or isinstance(expected, bool):
        if isinstance(expected, str):
            return str(actual).lower() == expected.lower()
        return actual == expected
    return str(actual) == str(expected)


def _ilike(actual: Any, pattern: str) -> bool:
    if actual is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(actual), re.IGNORECASE) is not None


def _split_or(expression: str) -> List[str]:
    """Split an or= expression on commas outside double-quoted values."""
    clauses, current, quoted, escaped = [], "", False, False
    for char in expression:
        if escaped:
            current += char
            escaped = False
        elif char == "\\" and quoted:
            current += char
            escaped = True
        elif char == '"':
            current += char
            quoted = not quoted
        elif char == "," and not quoted:
            clauses.append(current)
            current = ""
        else:
            current += char
    if quoted:
        raise APIError({"code": "PGRST100", "message": "unterminated quoted value", "details": None, "hint": None})
    clauses.append(current)
    return clauses


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _parse_or(expression: str) -> Callable[[Dict[str, Any]], bool]:
    clauses = []
    for clause in _split_or(expression):
        parts = clause.split(".", 2)
        if len(parts) != 3 or parts[1] not in ("eq", "ilike"):
            raise APIError({"code": "PGRST100", "message": f"failed to parse filter ({clause})", "details": None, "hint": None})
        column, op, value = parts
        clauses.append((column, op, _unquote(value)))

    def predicate(row: Dict[str, Any]) -> bool:
        for column, op, value in clauses:
            if op == "eq" and _matches(row.get(column), value):
                return True
            if op == "ilike" and _ilike(row.get(column), value):
                return True
        return False

    return predicate


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._operation = "select"
        self._payload: Any = None
        self._columns = "*"
        self._count: Optional[str] = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: List[Tuple[str, bool]] = []
        self._range: Optional[Tuple[int, int]] = None
        self._limit: Optional[int] = None

    # --- operations ---

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._operation = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._operation = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._operation = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._operation = "delete"
        return self

    # --- filters ---

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: _matches(row.get(column), value))
        return self

    def neq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: not _matches(row.get(column), value))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self._filters.append(lambda row: any(_matches(row.get(column), v) for v in values))
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        self._filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def or_(self, expression: str) -> "FakeQuery":
        self._filters.append(_parse_or(expression))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order.append((column, desc))
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    # --- execution ---

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._operation))
        failure = self._db.failures.get((self._table, self._operation))
        if failure is not None:
            raise failure

        if self._operation == "insert":
            return FakeResponse(self._db._insert(self._table, self._payload))
        if self._operation == "update":
            return FakeResponse(self._db._update(self._table, self._payload, self._matching()))
        if self._operation == "delete":
            return FakeResponse(self._db._delete(self._table, self._matching()))
        return self._select()

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self._db._rows(self._table) if all(f(row) for f in self._filters)]

    def _select(self) -> FakeResponse:
        rows = self._matching()
        total = len(rows)

        for column, desc in reversed(self._order):
            rows.sort(key=lambda row: (row.get(column) is None, str(row.get(column))), reverse=desc)
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._columns.strip() != "*":
            names = [name.strip() for name in self._columns.split(",")]
            rows = [{name: row.get(name) for name in names} for row in rows]

        return FakeResponse(
            [copy.deepcopy(row) for row in rows],
            count=total if self._count == "exact" else None,
        )


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self._storage = storage
        self._name = name

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        self._storage.objects[(self._name, path)] = (file, (file_options or {}).get("content-type"))
        return {"path": path}

    def create_signed_url(self, path: str, expires_in: int) -> Dict[str, str]:
        return {"signedURL": f"https://storage.test/{self._name}/{path}?expires_in={expires_in}"}

    def remove(self, paths: List[str]) -> List[Dict[str, str]]:
        for path in paths:
            self._storage.objects.pop((self._name, path), None)
        return [{"name": path} for path in paths]


class FakeStorage:
    def __init__(self):
        self.objects: Dict[Tuple[str, str], Tuple[bytes, Optional[str]]] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeRpc:
    def __init__(self, data: Any):
        self._data = data

    def execute(self) -> FakeResponse:
        return FakeResponse(self._data)


class FakeSupabase:
    """A fresh, empty database per instance."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.storage = FakeStorage()
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, str]] = []
        self._tick = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        if name != "has_role":
            raise APIError({"code": "42883", "message": f"function {name} does not exist", "details": None, "hint": None})
        found = any(
            _matches(row.get("id"), params["_user_id"]) and row.get("role") == params["_role"]
            for row in self._rows("profiles")
        )
        return FakeRpc(found)

    def fail(self, table: str, operation: str, code: str = "XX000", message: str = "boom") -> None:
        """Make the next and every later `operation` on `table` raise APIError."""
        self.failures[(table, operation)] = APIError(
            {"code": code, "message": message, "details": None, "hint": None}
        )

    # --- seeding helpers ---

    def seed(self, table: str, **row: Any) -> Dict[str, Any]:
        return self._insert(table, row)[0]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._rows(table))

    # --- storage engine ---

    def _now(self) -> str:
        self._tick += 1
        return (BASE_TIME + timedelta(seconds=self._tick)).isoformat()

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        if table == "admin_dashboard_summary":
            return [self._dashboard_summary()]
        return self.tables.setdefault(table, [])

    def _insert(self, table: str, payload: Any) -> List[Dict[str, Any]]:
        incoming = payload if isinstance(payload, list) else [payload]
        created = []
        for values in incoming:
            for column in GENERATED.get(table, ()):
                if column in values:
                    raise APIError({
                        "code": "428C9",
                        "message": f'cannot insert a non-DEFAULT value into column "{column}"',
                        "details": None,
                        "hint": None,
                    })
            now = self._now()
            row: Dict[str, Any] = {"id": str(uuid.uuid4()), "created_at": now}
            if table not in APPEND_ONLY:
                row["updated_at"] = now
            row.update(copy.deepcopy(DEFAULTS.get(table, {})))
            row.update(copy.deepcopy(values))
            self._derive(table, row)
            _check_row(table, row)
            self._check_unique(table, row)
            self._rows(table).append(row)
            self._after_write(table, row)
            created.append(copy.deepcopy(row))
        return created

    def _update(self, table: str, payload: Dict[str, Any], targets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        for column in GENERATED.get(table, ()):
            if column in payload:
                raise APIError({
                    "code": "428C9",
                    "message": f'column "{column}" can only be updated to DEFAULT',
                    "details": None,
                    "hint": None,
                })
        updated = []
        for row in targets:
            candidate = {**row, **copy.deepcopy(payload)}
            if table not in APPEND_ONLY:
                candidate["updated_at"] = self._now()
            self._derive(table, candidate)
            _check_row(table, candidate)
            self._check_unique(table, candidate, ignore=row)
            row.clear()
            row.update(candidate)
            self._after_write(table, row)
            updated.append(copy.deepcopy(row))
        return updated

    def _delete(self, table: str, targets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        rows = self._rows(table)
        deleted = []
        for row in targets:
            rows.remove(row)
            deleted.append(copy.deepcopy(row))
        return deleted

    def _derive(self, table: str, row: Dict[str, Any]) -> None:
        if table == "withdrawals":
            row["net_amount"] = str(_dec(row.get("amount")) - _dec(row.get("fee")))

    def _check_unique(self, table: str, row: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for column in UNIQUE.get(table, ()):
            value = row.get(column)
            if value is None:
                continue
            for other in self._rows(table):
                if other is ignore:
                    continue
                if _matches(other.get(column), value):
                    raise APIError({
                        "code": "23505",
                        "message": f'duplicate key value violates unique constraint "{table}_{column}_key"',
                        "details": None,
                        "hint": None,
                    })

    def _after_write(self, table: str, row: Dict[str, Any]) -> None:
        if table == "kyc_documents":
            for profile in self._rows("profiles"):
                if _matches(profile.get("id"), row.get("user_id")):
                    profile["kyc_status"] = row.get("status")

    def _dashboard_summary(self) -> Dict[str, Any]:
        tables = self.tables

        def count(name: str, column: str, value: Any) -> int:
            return sum(1 for row in tables.get(name, []) if row.get(column) == value)

        def completed_total(name: str) -> str:
            total = sum(
                (_dec(row.get("amount")) for row in tables.get(name, []) if row.get("status") == "completed"),
                Decimal("0"),
            )
            return str(total)

        return {
            "total_users": count("profiles", "role", "user"),
            "kyc_approved_users": count("profiles", "kyc_status", "approved"),
            "pending_kyc": count("kyc_documents", "status", "pending"),
            "pending_deposits": count("deposits", "status", "pending"),
            "pending_withdrawals": count("withdrawals", "status", "pending"),
            "total_deposits": completed_total("deposits"),
            "total_withdrawals": completed_total("withdrawals"),
        }
