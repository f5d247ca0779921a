"""
FastAPI routers for all API endpoints.

Each module defines a router for one area (deposits, KYC, admin, ...).
Handlers resolve the caller's AuthContext, build a per-request Supabase
client, call a service function and map the result to a response model.
"""
