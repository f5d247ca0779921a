"""
KYC API endpoints (user side).

- POST  /kyc                    Submit identity details (once per user)
- GET   /kyc                    Own submission with signed document URLs
- PATCH /kyc                    Edit while pending, or resubmit after rejection
- POST  /kyc/documents/{kind}   Upload id_front, id_back or selfie image

Admin review lives in wealthhub/routes/admin.py.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile, status

from wealthhub.auth.dependencies import get_auth_context
from wealthhub.auth.policies import AuthContext
from wealthhub.db.client import get_supabase_client
from wealthhub.routes.errors import not_found, read_upload, to_http_exception
from wealthhub.schemas.kyc import (
    KycDetailResponse,
    KycDocumentKind,
    KycDocumentUrls,
    KycResponse,
    KycSubmitRequest,
    KycUpdateRequest,
)
from wealthhub.services import (
    attach_kyc_document,
    get_kyc_document_urls,
    get_own_kyc,
    submit_kyc,
    update_own_kyc,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kyc", tags=["kyc"])


@router.post(
    "",
    response_model=KycResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit KYC",
    description="""
    Submit identity details for verification. The submission starts as
    'pending'. Each user has at most one submission (409 on a second one).
    """
)
async def submit_kyc_details(
    request: KycSubmitRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> KycResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        record = await submit_kyc(supabase_client, ctx, **request.model_dump())
    except Exception as e:
        raise to_http_exception(e, "create_error", "Failed to submit KYC")

    return KycResponse.model_validate(record)


@router.get(
    "",
    response_model=KycDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own KYC submission",
)
async def get_kyc(
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> KycDetailResponse:
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        record = await get_own_kyc(supabase_client, ctx)
        if record is None:
            raise not_found("No KYC submission for this user")
        urls = get_kyc_document_urls(supabase_client, record)
    except Exception as e:
        raise to_http_exception(e, "fetch_error", "Failed to retrieve KYC submission")

    return KycDetailResponse(kyc=KycResponse.model_validate(record), documents=KycDocumentUrls(**urls))


@router.patch(
    "",
    response_model=KycResponse,
    status_code=status.HTTP_200_OK,
    summary="Edit or resubmit KYC",
    description="""
    Edit the submission while it is pending. Editing a rejected submission
    resubmits it: status returns to 'pending' and the rejection reason is
    cleared. Approved or under-review submissions cannot be edited.
    """
)
async def update_kyc(
    request: KycUpdateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> KycResponse:
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "No fields to update"}
        )

    supabase_client = get_supabase_client(ctx.access_token)

    try:
        record = await update_own_kyc(supabase_client, ctx, **updates)
    except Exception as e:
        raise to_http_exception(e, "update_error", "Failed to update KYC submission")

    if record is None:
        raise not_found("No KYC submission for this user")
    return KycResponse.model_validate(record)


@router.post(
    "/documents/{kind}",
    response_model=KycResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a KYC document image",
    description="""
    Upload a JPEG, PNG, WEBP or PDF to the private kyc-documents bucket and
    link it to the caller's submission.
    """
)
async def upload_kyc_document(
    kind: Annotated[KycDocumentKind, Path(description="id_front, id_back or selfie")],
    file: Annotated[UploadFile, File(description="Document image")],
    ctx: Annotated[AuthContext, Depends(get_auth_context)]
) -> KycResponse:
    file_bytes = await read_upload(file)
    supabase_client = get_supabase_client(ctx.access_token)

    try:
        record = await attach_kyc_document(
            supabase_client, ctx, kind, file_bytes,
            filename=file.filename or kind,
            content_type=file.content_type,
        )
    except Exception as e:
        raise to_http_exception(e, "upload_error", "Failed to upload document")

    if record is None:
        raise not_found("Submit KYC details before uploading documents")
    return KycResponse.model_validate(record)
