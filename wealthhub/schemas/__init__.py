"""
Pydantic schemas for API request and response validation.

Enumerations are Literal types mirroring the CHECK constraints in
supabase/migrations; monetary fields are Decimal with two places.
"""
