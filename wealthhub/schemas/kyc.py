"""
Pydantic schemas for KYC endpoints.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

IdType = Literal["passport", "driver_license", "national_id", "government_id"]
KycStatus = Literal["pending", "under_review", "approved", "rejected"]
KycDocumentKind = Literal["id_front", "id_back", "selfie"]


class KycSubmitRequest(BaseModel):
    """One submission per user; a second submission returns 409."""
    id_type: IdType = Field(..., description="Identity document type")
    id_number: str = Field(..., min_length=1, max_length=100, description="Document number")
    full_name: str = Field(..., min_length=1, max_length=200, description="Name as on the document")
    date_of_birth: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="ISO date")
    country: str = Field(..., min_length=2, max_length=100, description="Issuing country")


class KycUpdateRequest(BaseModel):
    """Owner edits while pending, or resubmits after rejection."""
    id_type: Optional[IdType] = None
    id_number: Optional[str] = Field(None, min_length=1, max_length=100)
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    date_of_birth: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    country: Optional[str] = Field(None, min_length=2, max_length=100)


class KycResponse(BaseModel):
    id: str
    user_id: str
    id_type: IdType
    id_number: str
    full_name: str
    date_of_birth: str
    country: str
    id_front_url: Optional[str] = Field(None, description="Storage path in the kyc-documents bucket")
    id_back_url: Optional[str] = None
    selfie_url: Optional[str] = None
    status: KycStatus = "pending"
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class KycDocumentUrls(BaseModel):
    """Short-lived signed URLs for the stored images."""
    id_front: Optional[str] = None
    id_back: Optional[str] = None
    selfie: Optional[str] = None


class KycDetailResponse(BaseModel):
    kyc: KycResponse
    documents: KycDocumentUrls


class KycListResponse(BaseModel):
    submissions: List[KycResponse]
    count: int
    limit: int
    offset: int


class KycReviewRequest(BaseModel):
    """Admin decision. 'rejected' requires a rejection_reason."""
    status: Literal["under_review", "approved", "rejected"]
    admin_notes: Optional[str] = Field(None, max_length=2000)
    rejection_reason: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_rejection_reason(self) -> "KycReviewRequest":
        if self.status == "rejected" and not self.rejection_reason:
            raise ValueError("rejection_reason is required when rejecting")
        return self
