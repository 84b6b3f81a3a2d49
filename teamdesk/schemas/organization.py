"""
Organization Schemas
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class OrganizationSummary(BaseModel):
    """An organization the user belongs to, with their role there."""
    id: str
    name: str
    created_at: datetime
    role: str
    member_count: int


class OrganizationListResponse(BaseModel):
    organizations: List[OrganizationSummary]


class LeaveOrganizationResponse(BaseModel):
    success: bool = True
    message: str
    organization_id: Optional[str] = None


class OrganizationNameCheck(BaseModel):
    name: str
    # Set when renaming, so the organization's own name counts as free
    current_organization_id: Optional[str] = None


class AvailabilityResponse(BaseModel):
    """Result of a name or email availability check."""
    available: bool
    message: Optional[str] = None
    error: Optional[str] = None
