"""
Pydantic schemas for profile endpoints.

Profiles are 1:1 with auth.users. Owners edit contact details; role,
kyc_status and account_status are changed through the admin users tab.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "admin", "support"]
KycStatus = Literal["pending", "under_review", "approved", "rejected"]
AccountStatus = Literal["active", "suspended", "closed"]


class ProfileResponse(BaseModel):
    """Full profile row."""
    id: str = Field(..., description="User UUID (= auth.users.id)")
    email: Optional[str] = Field(None, description="Login email")
    full_name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Contact phone number")
    date_of_birth: Optional[str] = Field(None, description="ISO date of birth")
    country: Optional[str] = Field(None, description="Country of residence")
    referral_code: Optional[str] = Field(None, description="Code this user shares with referred users")
    role: Role = Field("user", description="Authorization role")
    kyc_status: KycStatus = Field("pending", description="Mirror of the user's KYC submission status")
    account_status: AccountStatus = Field("active", description="Account state")
    created_at: Optional[str] = Field(None, description="ISO-8601 timestamp when created")
    updated_at: Optional[str] = Field(None, description="ISO-8601 timestamp of last update")


class ProfileUpdateRequest(BaseModel):
    """
    Owner-editable profile fields. At least one must be provided.
    """
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=40, examples=["+44 20 7946 0958"])
    date_of_birth: Optional[str] = Field(
        None,
        description="ISO date (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )
    country: Optional[str] = Field(None, min_length=2, max_length=100)


class AdminProfileUpdateRequest(ProfileUpdateRequest):
    """Admin users tab: may also change role and verification/account state."""
    role: Optional[Role] = None
    kyc_status: Optional[KycStatus] = None
    account_status: Optional[AccountStatus] = None


class ProfileUpdateResponse(BaseModel):
    status: Literal["UPDATED"] = Field("UPDATED", description="Operation status")
    profile: ProfileResponse
    message: str = Field("Profile updated successfully")


class ProfileListResponse(BaseModel):
    profiles: List[ProfileResponse]
    count: int = Field(..., description="Number of profiles returned")
    limit: int
    offset: int
