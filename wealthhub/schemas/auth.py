"""
Pydantic schemas for signup, login and identity endpoints.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from wealthhub.schemas.profile import ProfileResponse


class SignupRequest(BaseModel):
    """
    Request body for POST /auth/signup.

    referral_code is optional and matched case-insensitively.
    """
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, max_length=128, description="Account password")
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    date_of_birth: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    country: Optional[str] = Field(None, max_length=100)
    referral_code: Optional[str] = Field(None, max_length=32, examples=["AB12CD34"])
    accepted_terms: bool = Field(False, description="Must be true: Terms & Conditions accepted")


class SignupResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    referral_code: Optional[str] = Field(None, description="The new user's own referral code")
    referral_recorded: bool = Field(False, description="True if a referral row was created")
    message: str = Field(
        "Account created successfully! Please check your email to verify your account."
    )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    """Supabase session returned by the login endpoints."""
    user_id: str
    email: Optional[str] = None
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"


class AuthMeResponse(BaseModel):
    """
    Response for GET /auth/me: identity, role and profile.
    """
    user_id: str = Field(..., description="User UUID (from JWT 'sub' claim)")
    email: Optional[str] = Field(None, description="From the JWT 'email' claim, if present")
    role: str = Field(..., description="Role used for authorization on this request")
    account_status: str = Field(..., description="Account state")
    profile: Optional[ProfileResponse] = Field(None, description="Profile row if it exists")
