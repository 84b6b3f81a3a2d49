"""
Team Schemas

Request/response models for invitations and team members.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from teamdesk.models.team import MemberRole


class InviteRequest(BaseModel):
    """Invite one person into the organization."""
    email: EmailStr
    role: MemberRole = MemberRole.MEMBER

    class Config:
        json_schema_extra = {
            "example": {
                "email": "colleague@example.com",
                "role": "member"
            }
        }


class InvitationResponse(BaseModel):
    """A pending invitation as seen by the organization."""
    team_member_id: str
    email: str
    role: str
    invited_by: Optional[str] = None
    expires_at: datetime
    expired: bool = False
    created_at: datetime


class InvitationListResponse(BaseModel):
    invitations: List[InvitationResponse]


class InviteResponse(BaseModel):
    success: bool = True
    team_member_id: str
    email: str
    role: str
    expires_at: datetime


class ResendResponse(BaseModel):
    success: bool = True
    expires_at: datetime


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class MemberUser(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None


class TeamMemberResponse(BaseModel):
    id: str
    role: str
    status: str
    created_at: datetime
    member: MemberUser


class TeamMemberListResponse(BaseModel):
    members: List[TeamMemberResponse]


class AcceptInviteRequest(BaseModel):
    """Accept an invitation from its emailed link."""
    token: str = Field(..., min_length=1)


class UserInvitationResponse(BaseModel):
    """An invitation addressed to the signed-in user."""
    id: str
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    role: str
    invited_by_name: Optional[str] = None
    invited_by_email: Optional[str] = None
    expires_at: datetime
    created_at: datetime


class UserInvitationListResponse(BaseModel):
    invitations: List[UserInvitationResponse]


class EmailCheckRequest(BaseModel):
    email: EmailStr
