"""
Database access layer for the Wealth Hub backend.

All data access goes through supabase-py. Table definitions, constraints,
RLS policies and the dashboard view live in supabase/migrations; this
package only builds clients.
"""

from .client import get_anon_client, get_service_role_client, get_supabase_client

__all__ = ["get_supabase_client", "get_anon_client", "get_service_role_client"]
