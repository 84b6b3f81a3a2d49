"""
Database Models

Users own organizations and workspaces; everyone else reaches them
through team membership.
"""
from teamdesk.models.user import User
from teamdesk.models.organization import Organization
from teamdesk.models.workspace import Workspace
from teamdesk.models.team import TeamMember, TeamInvitation, MemberRole, MemberStatus
from teamdesk.models.verification import VerificationToken

__all__ = [
    "User",
    "Organization",
    "Workspace",
    "TeamMember",
    "TeamInvitation",
    "MemberRole",
    "MemberStatus",
    "VerificationToken",
]
