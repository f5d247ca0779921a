"""
Tests for account balance mutations.
"""

from decimal import Decimal

import pytest

from wealthhub.auth.policies import PolicyDenied
from wealthhub.services import balance_service
from wealthhub.services.balance_service import (
    InsufficientBalance,
    adjust_profit_balance,
    credit_bonus,
    credit_deposit,
    debit_withdrawal,
    get_balance,
    get_or_create_balance,
)
from wealthhub.services.lifecycle import ConcurrentModification


class TestReadBalance:

    @pytest.mark.asyncio
    async def test_missing_row_is_zero_shape(self, db, user_ctx):
        balance = await get_balance(db, user_ctx)

        assert balance["id"] is None
        assert balance["user_id"] == user_ctx.user_id
        assert balance["main_balance"] == "0.00"
        assert balance["profit_balance"] == "0.00"

    @pytest.mark.asyncio
    async def test_other_users_balance_not_leaked(self, db, user_ctx, other_ctx):
        db.seed("account_balances", user_id=other_ctx.user_id, main_balance="999.00")

        balance = await get_balance(db, user_ctx, user_id=other_ctx.user_id)

        assert balance["main_balance"] == "0.00"

    @pytest.mark.asyncio
    async def test_only_admin_creates_rows(self, db, user_ctx):
        with pytest.raises(PolicyDenied):
            await get_or_create_balance(db, user_ctx, user_ctx.user_id)

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, db, user_ctx, admin_ctx):
        first = await get_or_create_balance(db, admin_ctx, user_ctx.user_id)
        second = await get_or_create_balance(db, admin_ctx, user_ctx.user_id)

        assert first["id"] == second["id"]
        assert len(db.rows("account_balances")) == 1


class TestMutations:

    @pytest.mark.asyncio
    async def test_credit_then_debit(self, db, user_ctx, admin_ctx):
        await credit_deposit(db, admin_ctx, {"id": "dep-1", "user_id": user_ctx.user_id, "amount": "120.00"})
        await debit_withdrawal(
            db, admin_ctx,
            {"id": "wd-1", "user_id": user_ctx.user_id, "amount": "20.00", "fee": "0.00"},
        )

        balance = await get_balance(db, user_ctx)
        assert balance["main_balance"] == "100.00"
        assert balance["total_deposited"] == "120.00"
        assert balance["total_withdrawn"] == "20.00"
        # No fee row for a zero fee
        assert [t["type"] for t in db.rows("transactions")] == ["deposit", "withdrawal"]

    @pytest.mark.asyncio
    async def test_debit_below_zero(self, db, user_ctx, admin_ctx):
        db.seed("account_balances", user_id=user_ctx.user_id, main_balance="10.00")

        with pytest.raises(InsufficientBalance) as exc_info:
            await debit_withdrawal(
                db, admin_ctx,
                {"id": "wd-1", "user_id": user_ctx.user_id, "amount": "10.01", "fee": "0.00"},
            )

        assert exc_info.value.requested == Decimal("10.01")
        assert db.rows("account_balances")[0]["main_balance"] == "10.00"

    @pytest.mark.asyncio
    async def test_profit_adjustment(self, db, user_ctx, admin_ctx):
        await adjust_profit_balance(db, admin_ctx, user_ctx.user_id, Decimal("42.50"), note="Q1 interest")
        updated = await adjust_profit_balance(db, admin_ctx, user_ctx.user_id, Decimal("-2.50"))

        assert updated["profit_balance"] == "40.00"
        assert updated["main_balance"] == "0.00"
        # Only the positive adjustment is a transaction
        assert [(t["type"], t["amount"]) for t in db.rows("transactions")] == [("interest", "42.50")]
        actions = [log["action"] for log in db.rows("admin_logs")]
        assert actions == ["profit_adjusted", "profit_adjusted"]
        assert db.rows("admin_logs")[0]["changes"]["note"] == "Q1 interest"

    @pytest.mark.asyncio
    async def test_zero_adjustment(self, db, user_ctx, admin_ctx):
        with pytest.raises(ValueError):
            await adjust_profit_balance(db, admin_ctx, user_ctx.user_id, Decimal("0"))

    @pytest.mark.asyncio
    async def test_profit_cannot_go_negative(self, db, user_ctx, admin_ctx):
        with pytest.raises(InsufficientBalance):
            await adjust_profit_balance(db, admin_ctx, user_ctx.user_id, Decimal("-1.00"))

    @pytest.mark.asyncio
    async def test_user_cannot_adjust_profit(self, db, user_ctx):
        with pytest.raises(PolicyDenied):
            await adjust_profit_balance(db, user_ctx, user_ctx.user_id, Decimal("5.00"))

    @pytest.mark.asyncio
    async def test_bonus_goes_to_profit_balance(self, db, user_ctx, admin_ctx):
        updated = await credit_bonus(db, admin_ctx, user_ctx.user_id, Decimal("50.00"), "ref-1")

        assert updated["profit_balance"] == "50.00"
        assert db.rows("transactions")[0]["type"] == "bonus"
        assert db.rows("admin_logs")[0]["changes"] == {"referral_id": "ref-1", "amount": "50.00"}

    @pytest.mark.asyncio
    async def test_stale_balance_read(self, db, user_ctx, admin_ctx, monkeypatch):
        db.seed("account_balances", user_id=user_ctx.user_id, main_balance="100.00")
        real_get = balance_service.get_or_create_balance

        async def stale_read(client, ctx, user_id):
            row = await real_get(client, ctx, user_id)
            # Another admin credits the account right after our read
            client.table("account_balances").update({"main_balance": "150.00"}).eq("user_id", user_id).execute()
            return row

        monkeypatch.setattr(balance_service, "get_or_create_balance", stale_read)

        with pytest.raises(ConcurrentModification):
            await credit_bonus(db, admin_ctx, user_ctx.user_id, Decimal("5.00"), "ref-1")

        assert db.rows("account_balances")[0]["main_balance"] == "150.00"
        assert db.rows("account_balances")[0]["profit_balance"] == "0.00"
