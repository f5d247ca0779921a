"""
Tests for the KYC service against the in-memory Supabase fake.
"""

import pytest
from postgrest.exceptions import APIError

from wealthhub.auth.policies import PolicyDenied
from wealthhub.services import kyc_service
from wealthhub.services.kyc_service import (
    attach_kyc_document,
    get_kyc_by_id,
    get_kyc_document_urls,
    get_own_kyc,
    list_kyc_submissions,
    review_kyc,
    submit_kyc,
    update_own_kyc,
)
from wealthhub.services.lifecycle import ConcurrentModification, InvalidTransition

KYC_FIELDS = {
    "id_type": "passport",
    "id_number": "X1234567",
    "full_name": "Test User",
    "date_of_birth": "1990-01-01",
    "country": "GB",
}


class TestSubmitKyc:

    @pytest.mark.asyncio
    async def test_submit_creates_pending_row(self, db, user_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)

        assert record["status"] == "pending"
        assert record["user_id"] == user_ctx.user_id
        assert [a["action"] for a in db.rows("activity_logs")] == ["kyc_submitted"]

    @pytest.mark.asyncio
    async def test_duplicate_submission_is_unique_violation(self, db, user_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)

        with pytest.raises(APIError) as exc_info:
            await submit_kyc(db, user_ctx, **KYC_FIELDS)

        assert exc_info.value.code == "23505"
        assert len(db.rows("kyc_documents")) == 1

    @pytest.mark.asyncio
    async def test_activity_log_failure_does_not_fail_submission(self, db, user_ctx):
        db.fail("activity_logs", "insert")

        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)

        assert record["status"] == "pending"


class TestReadKyc:

    @pytest.mark.asyncio
    async def test_other_user_sees_nothing(self, db, user_ctx, other_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)

        assert await get_kyc_by_id(db, other_ctx, record["id"]) is None
        assert await list_kyc_submissions(db, other_ctx) == []
        assert await get_own_kyc(db, other_ctx) is None

    @pytest.mark.asyncio
    async def test_admin_lists_all_with_status_filter(self, db, user_ctx, other_ctx, admin_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)
        second = await submit_kyc(db, other_ctx, **KYC_FIELDS)
        await review_kyc(db, admin_ctx, second["id"], "under_review")

        everything = await list_kyc_submissions(db, admin_ctx)
        pending = await list_kyc_submissions(db, admin_ctx, status="pending")

        assert len(everything) == 2
        assert [r["user_id"] for r in pending] == [user_ctx.user_id]


class TestOwnerEdits:

    @pytest.mark.asyncio
    async def test_edit_while_pending(self, db, user_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)

        updated = await update_own_kyc(db, user_ctx, country="FR")

        assert updated["country"] == "FR"
        assert updated["status"] == "pending"

    @pytest.mark.asyncio
    async def test_edit_after_rejection_resubmits(self, db, user_ctx, admin_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)
        await review_kyc(db, admin_ctx, record["id"], "rejected", rejection_reason="Blurry photo")

        updated = await update_own_kyc(db, user_ctx, id_number="Y7654321")

        assert updated["status"] == "pending"
        assert updated["rejection_reason"] is None
        assert db.rows("profiles")[0]["kyc_status"] == "pending"

    @pytest.mark.asyncio
    async def test_edit_after_approval_denied(self, db, user_ctx, admin_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)
        await review_kyc(db, admin_ctx, record["id"], "approved")

        with pytest.raises(PolicyDenied):
            await update_own_kyc(db, user_ctx, country="FR")

    @pytest.mark.asyncio
    async def test_edit_without_submission_returns_none(self, db, user_ctx):
        assert await update_own_kyc(db, user_ctx, country="FR") is None

    @pytest.mark.asyncio
    async def test_attach_document_stores_path(self, db, user_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)

        updated = await attach_kyc_document(
            db, user_ctx, "selfie", b"jpeg-bytes", "me.jpg", content_type="image/jpeg"
        )

        assert updated["selfie_url"].startswith(f"{user_ctx.user_id}/selfie/")
        assert ("kyc-documents", updated["selfie_url"]) in db.storage.objects

        urls = get_kyc_document_urls(db, updated)
        assert urls["selfie"].startswith("https://storage.test/kyc-documents/")
        assert urls["id_front"] is None

    @pytest.mark.asyncio
    async def test_replacing_document_removes_old_file(self, db, user_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)
        first = await attach_kyc_document(db, user_ctx, "id_front", b"one", "front.png")

        second = await attach_kyc_document(db, user_ctx, "id_front", b"two", "front.png")

        assert second["id_front_url"] != first["id_front_url"]
        assert ("kyc-documents", first["id_front_url"]) not in db.storage.objects
        assert ("kyc-documents", second["id_front_url"]) in db.storage.objects

    @pytest.mark.asyncio
    async def test_upload_removed_when_review_starts_first(self, db, user_ctx, monkeypatch):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)
        real_upload = kyc_service.upload_document

        async def upload_then_review(*args, **kwargs):
            path = await real_upload(*args, **kwargs)
            # An admin picks the submission up while the file is uploading
            db.table("kyc_documents").update({"status": "under_review"}).eq("id", record["id"]).execute()
            return path

        monkeypatch.setattr(kyc_service, "upload_document", upload_then_review)

        with pytest.raises(PolicyDenied):
            await attach_kyc_document(db, user_ctx, "selfie", b"me", "me.png")

        assert db.storage.objects == {}
        assert db.rows("kyc_documents")[0]["selfie_url"] is None

    @pytest.mark.asyncio
    async def test_attach_unknown_kind(self, db, user_ctx):
        await submit_kyc(db, user_ctx, **KYC_FIELDS)
        with pytest.raises(ValueError):
            await attach_kyc_document(db, user_ctx, "utility_bill", b"x", "bill.pdf")


class TestReviewKyc:

    @pytest.mark.asyncio
    async def test_approval_syncs_profile_and_logs(self, db, user_ctx, admin_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)

        updated = await review_kyc(db, admin_ctx, record["id"], "approved", admin_notes="Looks good")

        assert updated["status"] == "approved"
        assert updated["reviewed_by"] == admin_ctx.user_id
        profile = next(p for p in db.rows("profiles") if p["id"] == user_ctx.user_id)
        assert profile["kyc_status"] == "approved"
        log = db.rows("admin_logs")[-1]
        assert log["action"] == "kyc_status_changed"
        assert log["changes"] == {"from": "pending", "to": "approved", "rejection_reason": None}

    @pytest.mark.asyncio
    async def test_non_admin_cannot_review(self, db, user_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)
        with pytest.raises(PolicyDenied):
            await review_kyc(db, user_ctx, record["id"], "approved")

    @pytest.mark.asyncio
    async def test_approved_is_final(self, db, user_ctx, admin_ctx):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)
        await review_kyc(db, admin_ctx, record["id"], "approved")

        with pytest.raises(InvalidTransition):
            await review_kyc(db, admin_ctx, record["id"], "rejected", rejection_reason="late")

    @pytest.mark.asyncio
    async def test_missing_submission_returns_none(self, db, admin_ctx):
        assert await review_kyc(db, admin_ctx, "00000000-0000-0000-0000-000000000000", "approved") is None

    @pytest.mark.asyncio
    async def test_status_changed_between_read_and_update(self, db, user_ctx, admin_ctx, monkeypatch):
        record = await submit_kyc(db, user_ctx, **KYC_FIELDS)

        from wealthhub.services import kyc_service
        real_get = kyc_service.get_kyc_by_id

        async def stale_read(client, ctx, kyc_id):
            row = await real_get(client, ctx, kyc_id)
            # Another admin decides right after our read
            client.table("kyc_documents").update({"status": "under_review"}).eq("id", kyc_id).execute()
            return row

        monkeypatch.setattr(kyc_service, "get_kyc_by_id", stale_read)

        with pytest.raises(ConcurrentModification):
            await review_kyc(db, admin_ctx, record["id"], "approved")
