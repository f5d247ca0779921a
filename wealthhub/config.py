"""
Configuration module for the Wealth Hub backend.

Loads environment variables and validates required settings.
"""
import os
from decimal import Decimal
from typing import List
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Supabase Configuration
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_PUBLISHABLE_KEY: str = os.getenv("SUPABASE_PUBLISHABLE_KEY", "")
    # Secret (service_role) key, only used by the signup flow to finish the
    # profile and referral rows before the new user has a session
    SUPABASE_SECRET_KEY: str = os.getenv("SUPABASE_SECRET_KEY", "")

    @property
    def SUPABASE_JWKS_URL(self) -> str:
        """Get the JWKS URL for JWT verification."""
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"

    # Supabase Storage buckets (both private)
    KYC_DOCUMENTS_BUCKET: str = os.getenv("KYC_DOCUMENTS_BUCKET", "kyc-documents")
    DEPOSIT_PROOFS_BUCKET: str = os.getenv("DEPOSIT_PROOFS_BUCKET", "deposit-proofs")
    MAX_UPLOAD_MB: int = int(os.getenv("MAX_UPLOAD_MB", "10"))
    SIGNED_URL_TTL_SECONDS: int = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))

    # Business settings
    REFERRAL_BONUS_AMOUNT: Decimal = Decimal(os.getenv("REFERRAL_BONUS_AMOUNT", "50"))
    WITHDRAWAL_FEE_PERCENT: Decimal = Decimal(os.getenv("WITHDRAWAL_FEE_PERCENT", "0"))
    SIGNUP_REDIRECT_URL: str = os.getenv("SIGNUP_REDIRECT_URL", "")

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Settings
    CORS_ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required settings are configured.

        Raises:
            ValueError: If any required setting is missing or malformed.
        """
        required_settings = {
            "SUPABASE_URL": cls.SUPABASE_URL,
            "SUPABASE_PUBLISHABLE_KEY": cls.SUPABASE_PUBLISHABLE_KEY,
        }

        missing = [key for key, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

        if cls.WITHDRAWAL_FEE_PERCENT < 0 or cls.WITHDRAWAL_FEE_PERCENT >= 100:
            raise ValueError("WITHDRAWAL_FEE_PERCENT must be between 0 and 100")

        if cls.REFERRAL_BONUS_AMOUNT < 0:
            raise ValueError("REFERRAL_BONUS_AMOUNT cannot be negative")

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"


# Create a singleton instance
settings = Settings()

# Validate settings on module import (will fail fast if misconfigured)
# Skip validation during tests or when importing for introspection
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # In development, warn but don't crash
        if settings.is_development():
            print(f"Warning: {e}")
            print("   The app may not work correctly until you configure your .env file.")
        else:
            raise
