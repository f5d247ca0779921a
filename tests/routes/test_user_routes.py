"""
Tests for the user-facing endpoints: profile, KYC, withdrawal accounts,
deposits, withdrawals, balance, referrals, payment methods and activity.

Routes run against the in-memory database, so the responses go through
the real services, policies and response models.
"""

import pytest
from decimal import Decimal

from wealthhub.auth.policies import AuthContext

KYC_BODY = {
    "id_type": "passport",
    "id_number": "X1234567",
    "full_name": "Test User",
    "date_of_birth": "1990-01-01",
    "country": "GB",
}

BANK_ACCOUNT = {
    "account_type": "bank",
    "bank_name": "Test Bank",
    "account_number": "12345678",
    "account_holder_name": "Test User",
}


class TestAuthentication:

    @pytest.mark.parametrize("path", ["/profile", "/kyc", "/deposits", "/withdrawals", "/balance"])
    def test_missing_token_is_401(self, api, path):
        response = api.get(path)
        assert response.status_code == 401


class TestProfileRoutes:

    def test_get_profile(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.get("/profile")

        assert response.status_code == 200
        assert response.json()["email"] == "user@example.com"
        assert response.json()["role"] == "user"

    def test_update_contact_details(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.patch("/profile", json={"phone": "+44 20 7946 0958"})

        assert response.status_code == 200
        assert response.json()["status"] == "UPDATED"
        assert response.json()["profile"]["phone"] == "+44 20 7946 0958"

    def test_role_is_not_a_profile_field(self, api, db, login_as, user_ctx):
        login_as(user_ctx)

        response = api.patch("/profile", json={"role": "admin"})

        # Unknown fields are ignored, leaving nothing to update
        assert response.status_code == 400
        assert db.rows("profiles")[0]["role"] == "user"


class TestKycRoutes:

    def test_submit_then_duplicate(self, api, login_as, user_ctx):
        login_as(user_ctx)

        first = api.post("/kyc", json=KYC_BODY)
        second = api.post("/kyc", json=KYC_BODY)

        assert first.status_code == 201
        assert first.json()["status"] == "pending"
        assert second.status_code == 409
        assert second.json()["detail"]["error"] == "already_exists"

    def test_get_without_submission(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.get("/kyc")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_upload_document(self, api, login_as, user_ctx):
        login_as(user_ctx)
        api.post("/kyc", json=KYC_BODY)

        response = api.post(
            "/kyc/documents/selfie",
            files={"file": ("me.png", b"png-bytes", "image/png")},
        )
        detail = api.get("/kyc")

        assert response.status_code == 200
        assert response.json()["selfie_url"].startswith(user_ctx.user_id)
        assert detail.json()["documents"]["selfie"].startswith("https://storage.test/kyc-documents/")

    def test_upload_unsupported_type(self, api, login_as, user_ctx):
        login_as(user_ctx)
        api.post("/kyc", json=KYC_BODY)

        response = api.post(
            "/kyc/documents/id_front",
            files={"file": ("id.txt", b"text", "text/plain")},
        )

        assert response.status_code == 400

    def test_unknown_document_kind(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.post(
            "/kyc/documents/utility_bill",
            files={"file": ("bill.png", b"png", "image/png")},
        )

        assert response.status_code == 422


class TestWithdrawalAccountRoutes:

    def test_create_and_list(self, api, login_as, user_ctx):
        login_as(user_ctx)

        created = api.post("/withdrawal-accounts", json=BANK_ACCOUNT)
        listed = api.get("/withdrawal-accounts")

        assert created.status_code == 201
        assert created.json()["is_verified"] is False
        assert [a["id"] for a in listed.json()["accounts"]] == [created.json()["id"]]

    def test_crypto_without_address_is_422(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.post("/withdrawal-accounts", json={"account_type": "crypto", "crypto_type": "bitcoin"})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_other_user_gets_404(self, api, login_as, user_ctx, other_ctx):
        login_as(user_ctx)
        account_id = api.post("/withdrawal-accounts", json=BANK_ACCOUNT).json()["id"]

        login_as(other_ctx)
        assert api.get(f"/withdrawal-accounts/{account_id}").status_code == 404
        assert api.delete(f"/withdrawal-accounts/{account_id}").status_code == 404


class TestDepositRoutes:

    def test_create_and_read(self, api, login_as, user_ctx):
        login_as(user_ctx)

        created = api.post("/deposits", json={"amount": "150.00", "payment_method": "bank_transfer"})
        deposit_id = created.json()["id"]
        detail = api.get(f"/deposits/{deposit_id}")

        assert created.status_code == 201
        assert Decimal(created.json()["amount"]) == Decimal("150.00")
        assert detail.status_code == 200
        assert detail.json()["proof_url"] is None

    def test_amount_must_be_positive(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.post("/deposits", json={"amount": "0", "payment_method": "wire"})

        assert response.status_code == 422

    def test_suspended_account_forbidden(self, api, login_as):
        login_as(AuthContext(
            user_id="11111111-1111-1111-1111-111111111111",
            access_token="t",
            account_status="suspended",
        ))

        response = api.post("/deposits", json={"amount": "10.00", "payment_method": "wire"})

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "forbidden"

    def test_other_users_deposit_is_404(self, api, login_as, user_ctx, other_ctx):
        login_as(user_ctx)
        deposit_id = api.post("/deposits", json={"amount": "10.00", "payment_method": "wire"}).json()["id"]

        login_as(other_ctx)
        response = api.get(f"/deposits/{deposit_id}")

        assert response.status_code == 404

    def test_attach_proof(self, api, login_as, user_ctx):
        login_as(user_ctx)
        deposit_id = api.post("/deposits", json={"amount": "10.00", "payment_method": "wire"}).json()["id"]

        response = api.post(
            f"/deposits/{deposit_id}/proof",
            files={"file": ("receipt.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 200
        assert response.json()["proof_image_url"].endswith(".pdf")
        assert api.get(f"/deposits/{deposit_id}").json()["proof_url"].startswith("https://storage.test/")


class TestWithdrawalRoutes:

    def test_insufficient_balance(self, api, db, login_as, user_ctx):
        login_as(user_ctx)
        account_id = api.post("/withdrawal-accounts", json=BANK_ACCOUNT).json()["id"]

        response = api.post("/withdrawals", json={"withdrawal_account_id": account_id, "amount": "10.00"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "insufficient_balance"
        assert db.rows("withdrawals") == []

    def test_create_withdrawal(self, api, db, login_as, user_ctx):
        db.seed("account_balances", user_id=user_ctx.user_id, main_balance="80.00")
        login_as(user_ctx)
        account_id = api.post("/withdrawal-accounts", json=BANK_ACCOUNT).json()["id"]

        response = api.post("/withdrawals", json={"withdrawal_account_id": account_id, "amount": "80.00"})

        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert Decimal(response.json()["net_amount"]) == Decimal("80.00")


class TestReadOnlyRoutes:

    def test_balance_zero_when_no_activity(self, api, login_as, user_ctx):
        login_as(user_ctx)

        response = api.get("/balance")

        assert response.status_code == 200
        assert Decimal(response.json()["main_balance"]) == Decimal("0")

    def test_transactions_filter_by_type(self, api, db, login_as, user_ctx):
        db.seed("transactions", user_id=user_ctx.user_id, type="bonus", amount="5.00")
        db.seed("transactions", user_id=user_ctx.user_id, type="interest", amount="1.00")
        login_as(user_ctx)

        response = api.get("/transactions", params={"type": "bonus"})

        assert response.status_code == 200
        assert [t["type"] for t in response.json()["transactions"]] == ["bonus"]

    def test_referrals_of_caller(self, api, db, login_as, user_ctx, other_ctx):
        db.seed("referrals", referrer_id=user_ctx.user_id, referred_id=other_ctx.user_id, bonus_amount="50.00")
        login_as(user_ctx)

        response = api.get("/referrals")

        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_active_payment_methods(self, api, db, login_as, user_ctx):
        db.seed("deposit_payment_methods", payment_method="bank_transfer", display_name="Bank")
        db.seed("deposit_payment_methods", payment_method="bitcoin", display_name="BTC", is_active=False)
        login_as(user_ctx)

        response = api.get("/payment-methods")

        assert response.status_code == 200
        assert [m["display_name"] for m in response.json()["payment_methods"]] == ["Bank"]

    def test_activity_feed(self, api, login_as, user_ctx):
        login_as(user_ctx)
        api.post("/deposits", json={"amount": "10.00", "payment_method": "wire"})

        response = api.get("/activity")

        assert response.status_code == 200
        assert [a["action"] for a in response.json()["activity"]] == ["deposit_requested"]
