"""
KYC document service.

Each user has at most one kyc_documents row (UNIQUE(user_id)). The owner
submits and edits it while it is pending (or resubmits after rejection);
admins move it through pending -> under_review -> approved/rejected. The
sync_profile_kyc_status trigger mirrors every status onto profiles.kyc_status.
"""

import logging
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
from wealthhub.config import settings
from wealthhub.services.audit_service import log_activity, log_admin_action
from wealthhub.services.lifecycle import (
    apply_conditional_update,
    build_decision_update,
    ensure_transition,
    utc_now_iso,
)
from wealthhub.services.storage import delete_document, get_document_url, upload_document
from wealthhub.utils.constants import KYC_DOCUMENTS, STATUS_PENDING

logger = logging.getLogger(__name__)

# Upload kind -> kyc_documents column
DOCUMENT_COLUMNS = {
    "id_front": "id_front_url",
    "id_back": "id_back_url",
    "selfie": "selfie_url",
}


async def submit_kyc(
    supabase_client: Client,
    ctx: AuthContext,
    id_type: str,
    id_number: str,
    full_name: str,
    date_of_birth: str,
    country: str,
) -> Dict[str, Any]:
    """
    Create the caller's KYC submission in 'pending' status.

    Raises:
        PolicyDenied: If the insert policy rejects the row
        postgrest.exceptions.APIError: code 23505 if the user already has one
    """
    row = {
        "user_id": ctx.user_id,
        "id_type": id_type,
        "id_number": id_number,
        "full_name": full_name,
        "date_of_birth": date_of_birth,
        "country": country,
        "status": STATUS_PENDING,
    }
    authorize(ctx, KYC_DOCUMENTS, INSERT, row)

    logger.info(f"Submitting KYC for user {ctx.user_id}: id_type={id_type}, country={country}")

    result = supabase_client.table(KYC_DOCUMENTS).insert(row).execute()
    if not result.data:
        raise Exception("Failed to create KYC submission: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    await log_activity(
        supabase_client, ctx, "kyc_submitted",
        description="KYC documents submitted",
        metadata={"kyc_id": created.get("id"), "id_type": id_type},
    )
    return created


async def get_own_kyc(
    supabase_client: Client,
    ctx: AuthContext
) -> Optional[Dict[str, Any]]:
    """Fetch the caller's own KYC submission, or None if not submitted yet."""
    result = (
        supabase_client.table(KYC_DOCUMENTS)
        .select("*")
        .eq("user_id", ctx.user_id)
        .execute()
    )
    if not result.data:
        return None
    return cast(Dict[str, Any], result.data[0])


async def get_kyc_by_id(
    supabase_client: Client,
    ctx: AuthContext,
    kyc_id: str
) -> Optional[Dict[str, Any]]:
    """
    Fetch one KYC submission by id.

    Returns None when the row does not exist or belongs to someone else
    and the caller is not an admin.
    """
    query = scope_query(supabase_client.table(KYC_DOCUMENTS).select("*"), ctx, KYC_DOCUMENTS)
    result = query.eq("id", kyc_id).execute()

    if not result.data:
        return None

    record = cast(Dict[str, Any], result.data[0])
    authorize(ctx, KYC_DOCUMENTS, SELECT, record)
    return record


async def update_own_kyc(
    supabase_client: Client,
    ctx: AuthContext,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Edit the caller's KYC submission.

    Allowed while the submission is pending. Editing a rejected submission
    resubmits it: status goes back to pending and the rejection reason is
    cleared.

    Returns:
        The updated submission, or None if the caller has none
    """
    existing = await get_own_kyc(supabase_client, ctx)
    if existing is None:
        return None

    authorize(ctx, KYC_DOCUMENTS, UPDATE, existing)

    current_status = existing.get("status") or STATUS_PENDING
    payload: Dict[str, Any] = {**updates, "updated_at": utc_now_iso()}

    if current_status != STATUS_PENDING:
        ensure_transition(KYC_DOCUMENTS, current_status, STATUS_PENDING)
        payload["status"] = STATUS_PENDING
        payload["rejection_reason"] = None
        logger.info(f"KYC {existing['id']} resubmitted by user {ctx.user_id}")

    updated = apply_conditional_update(
        supabase_client, KYC_DOCUMENTS, existing["id"], current_status, payload
    )

    return updated


async def attach_kyc_document(
    supabase_client: Client,
    ctx: AuthContext,
    kind: str,
    file_bytes: bytes,
    filename: str,
    content_type: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Upload an identity document image and link it to the caller's KYC row.

    Args:
        kind: One of "id_front", "id_back", "selfie"

    Returns:
        The updated submission, or None if the caller has not submitted KYC
    """
    if kind not in DOCUMENT_COLUMNS:
        raise ValueError(f"Unknown document kind '{kind}'. Use one of: {', '.join(DOCUMENT_COLUMNS)}")

    existing = await get_own_kyc(supabase_client, ctx)
    if existing is None:
        return None
    authorize(ctx, KYC_DOCUMENTS, UPDATE, existing)

    storage_path = await upload_document(
        supabase_client,
        bucket=settings.KYC_DOCUMENTS_BUCKET,
        user_id=ctx.user_id,
        kind=kind,
        file_bytes=file_bytes,
        filename=filename,
        content_type=content_type,
    )

    try:
        updated = await update_own_kyc(supabase_client, ctx, **{DOCUMENT_COLUMNS[kind]: storage_path})
    except Exception:
        await delete_document(supabase_client, settings.KYC_DOCUMENTS_BUCKET, storage_path)
        raise
    if updated is None:
        await delete_document(supabase_client, settings.KYC_DOCUMENTS_BUCKET, storage_path)
        return None

    # Replaced file is no longer referenced
    previous_path = existing.get(DOCUMENT_COLUMNS[kind])
    if previous_path and previous_path != storage_path:
        await delete_document(supabase_client, settings.KYC_DOCUMENTS_BUCKET, previous_path)

    return updated


async def list_kyc_submissions(
    supabase_client: Client,
    ctx: AuthContext,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List KYC submissions for review (admins see everyone's)."""
    query = scope_query(supabase_client.table(KYC_DOCUMENTS).select("*"), ctx, KYC_DOCUMENTS)
    if status:
        query = query.eq("status", status)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def review_kyc(
    supabase_client: Client,
    ctx: AuthContext,
    kyc_id: str,
    status: str,
    admin_notes: Optional[str] = None,
    rejection_reason: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Admin decision on a KYC submission.

    Raises:
        PolicyDenied: Caller is not an admin
        InvalidTransition: Status move not allowed
        ConcurrentModification: Another admin changed the record first
    """
    require_admin_context(ctx)

    record = await get_kyc_by_id(supabase_client, ctx, kyc_id)
    if record is None:
        return None

    authorize(ctx, KYC_DOCUMENTS, UPDATE, record)
    current_status = record.get("status") or STATUS_PENDING
    ensure_transition(KYC_DOCUMENTS, current_status, status)

    update = build_decision_update(
        KYC_DOCUMENTS, status, ctx.user_id,
        admin_notes=admin_notes, rejection_reason=rejection_reason,
    )
    updated = apply_conditional_update(supabase_client, KYC_DOCUMENTS, kyc_id, current_status, update)

    await log_admin_action(
        supabase_client, ctx, "kyc_status_changed", KYC_DOCUMENTS, kyc_id,
        {"from": current_status, "to": status, "rejection_reason": rejection_reason},
    )

    logger.info(f"KYC {kyc_id} moved {current_status} -> {status} by admin {ctx.user_id}")
    return updated


def get_kyc_document_urls(
    supabase_client: Client,
    record: Dict[str, Any],
) -> Dict[str, Optional[str]]:
    """Signed URLs for the stored document images of a KYC submission."""
    urls: Dict[str, Optional[str]] = {}
    for kind, column in DOCUMENT_COLUMNS.items():
        path = record.get(column)
        urls[kind] = (
            get_document_url(supabase_client, settings.KYC_DOCUMENTS_BUCKET, path)
            if path else None
        )
    return urls

