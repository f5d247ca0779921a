"""
Supabase Storage service for KYC documents and deposit proofs.

Both buckets are private. Files are stored under {user_id}/{kind}/{uuid}.{ext}
so bucket policies can key off the first path segment, and database rows
keep only the storage path.
"""

import logging
import mimetypes
from typing import Optional
from uuid import uuid4

from supabase import Client

from wealthhub.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


def resolve_content_type(filename: str, content_type: Optional[str] = None) -> str:
    """
    Pick the MIME type for an upload, inferring it from the filename if needed.

    Raises:
        ValueError: If the type is not an accepted image or PDF.
    """
    if not content_type or content_type == "application/octet-stream":
        content_type, _ = mimetypes.guess_type(filename)
        if not content_type:
            content_type = "image/jpeg"  # default fallback

    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValueError(
            f"Unsupported file type '{content_type}'. "
            "Upload a JPEG, PNG, WEBP image or a PDF."
        )
    return content_type


def build_storage_path(user_id: str, kind: str, filename: str, content_type: str) -> str:
    if "." in filename:
        file_ext = filename.rsplit(".", 1)[1].lower()
    else:
        file_ext = ALLOWED_CONTENT_TYPES.get(content_type, "jpg")
    return f"{user_id}/{kind}/{uuid4()}.{file_ext}"


async def upload_document(
    supabase_client: Client,
    bucket: str,
    user_id: str,
    kind: str,
    file_bytes: bytes,
    filename: str,
    content_type: Optional[str] = None,
) -> str:
    """
    Upload a document to a private bucket.

    Args:
        supabase_client: Authenticated Supabase client
        bucket: settings.KYC_DOCUMENTS_BUCKET or settings.DEPOSIT_PROOFS_BUCKET
        user_id: Owner of the file (first path segment)
        kind: Document kind (e.g. "id_front", "selfie", "proof")
        file_bytes: Raw file bytes
        filename: Original filename (used to infer MIME type and extension)
        content_type: Optional MIME type

    Returns:
        Storage path in the format {user_id}/{kind}/{uuid}.{ext}

    Raises:
        ValueError: If the file is empty, too large, or of an unsupported type
        Exception: If the upload fails
    """
    if not file_bytes:
        raise ValueError("Uploaded file is empty")

    max_size_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    if len(file_bytes) > max_size_bytes:
        raise ValueError(f"File must be smaller than {settings.MAX_UPLOAD_MB}MB")

    content_type = resolve_content_type(filename, content_type)
    storage_path = build_storage_path(user_id, kind, filename, content_type)

    logger.info(
        f"Uploading {kind} document for user {user_id}: "
        f"bucket={bucket}, size={len(file_bytes)} bytes, content_type={content_type}"
    )

    try:
        supabase_client.storage.from_(bucket).upload(
            path=storage_path,
            file=file_bytes,
            file_options={"content-type": content_type}
        )
    except Exception as e:
        logger.error(f"Failed to upload document to bucket {bucket}: {e}", exc_info=True)
        raise

    logger.info(f"Stored document at {bucket}/{storage_path}")
    return storage_path


async def delete_document(
    supabase_client: Client,
    bucket: str,
    storage_path: str,
) -> bool:
    """
    Delete a stored document.

    Returns:
        True if deletion was successful, False otherwise (non-critical)
    """
    if not storage_path:
        logger.warning("delete_document called with empty storage_path")
        return False

    try:
        supabase_client.storage.from_(bucket).remove([storage_path])
    except Exception as e:
        logger.error(
            f"Failed to delete document from storage: "
            f"bucket={bucket}, storage_path={storage_path}, error={e}",
            exc_info=True
        )
        return False

    logger.info(f"Deleted document {bucket}/{storage_path}")
    return True


def get_document_url(
    supabase_client: Client,
    bucket: str,
    storage_path: str,
    expires_in: Optional[int] = None,
) -> str:
    """
    Generate a signed URL for a stored document.

    Raises:
        Exception: If URL generation fails
    """
    expires_in = expires_in or settings.SIGNED_URL_TTL_SECONDS
    try:
        response = supabase_client.storage.from_(bucket).create_signed_url(
            path=storage_path,
            expires_in=expires_in
        )
    except Exception as e:
        logger.error(
            f"Failed to generate signed URL for {bucket}/{storage_path}: {e}",
            exc_info=True
        )
        raise

    # Handle both dict-like and object responses
    if isinstance(response, dict):
        url = response.get("signedURL") or response.get("signed_url") or str(response)
    elif hasattr(response, "signedURL"):
        url = response.signedURL
    elif hasattr(response, "signed_url"):
        url = response.signed_url
    else:
        url = str(response)

    logger.debug(f"Generated signed URL for {bucket}/{storage_path}")
    return url
