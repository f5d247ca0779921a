"""
Account balance service.

account_balances holds one row per user with plain mutable columns. Every
change goes through this module so it is explicit and audited:

- credit_deposit:        completed deposit -> main_balance, total_deposited
- debit_withdrawal:      completed withdrawal -> main_balance, total_withdrawn
- adjust_profit_balance: admin profit/interest adjustment
- credit_bonus:          referral bonus payout -> profit_balance

Each mutation is a conditional update keyed on the row's updated_at, so two
admins cannot apply changes on top of the same stale read. Each one first
appends its transactions rows and an admin_logs row, then writes the
balance last. If any of these writes fails, the new transactions rows are
marked failed and no money has moved, so the caller can revert and retry.

This is not a ledger: there is no double entry and no reconciliation.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from wealthhub.auth.policies import (
    INSERT,
    SELECT,
    UPDATE,
    AuthContext,
    authorize,
    require_admin_context,
    scope_query,
)
from wealthhub.services.audit_service import log_admin_action
from wealthhub.services.lifecycle import ConcurrentModification, utc_now_iso
from wealthhub.services.transaction_service import mark_transactions_failed, record_transaction
from wealthhub.utils.constants import ACCOUNT_BALANCES
from wealthhub.utils.money import to_db, to_decimal

logger = logging.getLogger(__name__)

BALANCE_FIELDS = ("main_balance", "profit_balance", "total_deposited", "total_withdrawn")


class InsufficientBalance(ValueError):
    """Raised when a debit would take main_balance below zero."""

    def __init__(self, user_id: str, available: Decimal, requested: Decimal):
        self.user_id = user_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient balance: available {available}, requested {requested}"
        )


def empty_balance(user_id: str) -> Dict[str, Any]:
    """Zero balance shape returned for users without a balance row yet."""
    balance: Dict[str, Any] = {"id": None, "user_id": user_id}
    for name in BALANCE_FIELDS:
        balance[name] = "0.00"
    balance["created_at"] = None
    balance["updated_at"] = None
    return balance


async def get_balance(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Fetch a user's balance (defaults to the caller).

    A non-admin asking for someone else's balance gets the zero shape for
    their own scope, never the other user's figures.
    """
    target_id = user_id or ctx.user_id
    query = scope_query(
        supabase_client.table(ACCOUNT_BALANCES).select("*"), ctx, ACCOUNT_BALANCES
    )
    result = query.eq("user_id", target_id).execute()

    if not result.data:
        return empty_balance(target_id)

    balance = cast(Dict[str, Any], result.data[0])
    authorize(ctx, ACCOUNT_BALANCES, SELECT, balance)
    return balance


async def get_or_create_balance(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: str
) -> Dict[str, Any]:
    """Fetch a user's balance row, creating a zero row if missing (admins only)."""
    require_admin_context(ctx)

    existing = await get_balance(supabase_client, ctx, user_id)
    if existing.get("id"):
        return existing

    row: Dict[str, Any] = {"user_id": user_id}
    for name in BALANCE_FIELDS:
        row[name] = "0.00"
    authorize(ctx, ACCOUNT_BALANCES, INSERT, row)

    logger.info(f"Creating balance row for user {user_id}")
    result = supabase_client.table(ACCOUNT_BALANCES).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create balance row: no data returned")
    return cast(Dict[str, Any], result.data[0])


def _prepare_balance_change(
    ctx: AuthContext,
    balance: Dict[str, Any],
    deltas: Dict[str, Decimal],
) -> Dict[str, Any]:
    """Authorize and compute the new balance figures without writing them."""
    authorize(ctx, ACCOUNT_BALANCES, UPDATE, balance)

    payload: Dict[str, Any] = {}
    for name, delta in deltas.items():
        new_value = to_decimal(balance.get(name)) + delta
        if new_value < 0:
            if name == "main_balance" or name == "profit_balance":
                raise InsufficientBalance(
                    str(balance["user_id"]), to_decimal(balance.get(name)), -delta
                )
            raise ValueError(f"{name} cannot become negative")
        payload[name] = to_db(new_value)
    return payload


async def _commit_balance_change(
    supabase_client: Client,
    ctx: AuthContext,
    balance: Dict[str, Any],
    payload: Dict[str, Any],
    transactions: List[Dict[str, Any]],
    action: str,
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Record the history of a prepared change, then write the balance.

    The balance write comes last, so any failure here means no money moved.
    Transactions rows already written for the change are marked failed
    before the error is re-raised, and the caller may revert and retry.
    """
    payload = {**payload, "updated_at": utc_now_iso()}
    query = supabase_client.table(ACCOUNT_BALANCES).update(payload).eq("id", balance["id"])
    if balance.get("updated_at"):
        query = query.eq("updated_at", balance["updated_at"])

    recorded: List[Dict[str, Any]] = []
    try:
        for fields in transactions:
            recorded.append(await record_transaction(supabase_client, ctx, **fields))
        await log_admin_action(
            supabase_client, ctx, action, ACCOUNT_BALANCES, str(balance["id"]), changes
        )
        result = query.execute()
        if not result.data:
            raise ConcurrentModification(ACCOUNT_BALANCES, str(balance["id"]), "unchanged")
    except Exception as e:
        logger.error(f"Balance change '{action}' failed for user {balance['user_id']}: {e}")
        await mark_transactions_failed(
            supabase_client, ctx, [str(t["id"]) for t in recorded]
        )
        raise

    return cast(Dict[str, Any], result.data[0])


def ensure_sufficient_funds(balance: Dict[str, Any], amount: Any) -> None:
    """Raise InsufficientBalance unless main_balance covers `amount`."""
    available = to_decimal(balance.get("main_balance"))
    requested = to_decimal(amount)
    if available < requested:
        raise InsufficientBalance(str(balance.get("user_id")), available, requested)


async def credit_deposit(
    supabase_client: Client,
    ctx: AuthContext,
    deposit: Dict[str, Any]
) -> Dict[str, Any]:
    """Credit a completed deposit to the owner's main balance."""
    require_admin_context(ctx)

    user_id = str(deposit["user_id"])
    amount = to_decimal(deposit.get("amount"))
    balance = await get_or_create_balance(supabase_client, ctx, user_id)
    payload = _prepare_balance_change(
        ctx, balance, {"main_balance": amount, "total_deposited": amount}
    )

    updated = await _commit_balance_change(
        supabase_client, ctx, balance, payload,
        [{
            "user_id": user_id,
            "transaction_type": "deposit",
            "amount": amount,
            "currency": deposit.get("currency") or "USD",
            "deposit_id": str(deposit["id"]),
        }],
        "balance_credited",
        {"deposit_id": str(deposit["id"]), "amount": to_db(amount)},
    )

    logger.info(f"Credited deposit {deposit['id']} to user {user_id}")
    return updated


async def debit_withdrawal(
    supabase_client: Client,
    ctx: AuthContext,
    withdrawal: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Debit a completed withdrawal from the owner's main balance.

    The gross amount leaves main_balance; the transaction history records
    the net payout and the fee separately.

    Raises:
        InsufficientBalance: main_balance does not cover the amount
    """
    require_admin_context(ctx)

    user_id = str(withdrawal["user_id"])
    amount = to_decimal(withdrawal.get("amount"))
    fee = to_decimal(withdrawal.get("fee"))
    currency = withdrawal.get("currency") or "USD"
    balance = await get_or_create_balance(supabase_client, ctx, user_id)
    ensure_sufficient_funds(balance, amount)
    payload = _prepare_balance_change(
        ctx, balance, {"main_balance": -amount, "total_withdrawn": amount}
    )

    common = {"user_id": user_id, "currency": currency, "withdrawal_id": str(withdrawal["id"])}
    transactions = [{**common, "transaction_type": "withdrawal", "amount": amount - fee}]
    if fee > 0:
        transactions.append({**common, "transaction_type": "fee", "amount": fee})

    updated = await _commit_balance_change(
        supabase_client, ctx, balance, payload, transactions,
        "balance_debited",
        {"withdrawal_id": str(withdrawal["id"]), "amount": to_db(amount), "fee": to_db(fee)},
    )

    logger.info(f"Debited withdrawal {withdrawal['id']} from user {user_id}")
    return updated


async def adjust_profit_balance(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: str,
    amount: Decimal,
    note: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Add (or with a negative amount, remove) profit for a user.

    Raises:
        InsufficientBalance: Removal would take profit_balance below zero
        ValueError: Zero amount
    """
    require_admin_context(ctx)
    if amount == 0:
        raise ValueError("Adjustment amount cannot be zero")

    balance = await get_or_create_balance(supabase_client, ctx, user_id)
    payload = _prepare_balance_change(ctx, balance, {"profit_balance": amount})

    transactions: List[Dict[str, Any]] = []
    if amount > 0:
        transactions.append({"user_id": user_id, "transaction_type": "interest", "amount": amount})

    return await _commit_balance_change(
        supabase_client, ctx, balance, payload, transactions,
        "profit_adjusted",
        {"user_id": user_id, "amount": to_db(amount), "note": note},
    )


async def credit_bonus(
    supabase_client: Client,
    ctx: AuthContext,
    user_id: str,
    amount: Decimal,
    referral_id: str,
) -> Dict[str, Any]:
    """Credit a referral bonus to the referrer's profit balance."""
    require_admin_context(ctx)

    balance = await get_or_create_balance(supabase_client, ctx, user_id)
    payload = _prepare_balance_change(ctx, balance, {"profit_balance": amount})

    return await _commit_balance_change(
        supabase_client, ctx, balance, payload,
        [{"user_id": user_id, "transaction_type": "bonus", "amount": amount}],
        "bonus_credited",
        {"referral_id": referral_id, "amount": to_db(amount)},
    )
