"""
Pydantic schemas for activity and admin audit log endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ActivityLogResponse(BaseModel):
    id: str
    user_id: str
    action: str
    description: Optional[str] = None
    device_name: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    ip_address: Optional[str] = None
    location: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class ActivityLogListResponse(BaseModel):
    activity: List[ActivityLogResponse]
    count: int
    limit: int
    offset: int


class AdminLogResponse(BaseModel):
    id: str
    admin_id: str
    action: str
    table_name: Optional[str] = None
    record_id: Optional[str] = None
    changes: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class AdminLogListResponse(BaseModel):
    logs: List[AdminLogResponse]
    count: int
    limit: int
    offset: int
