"""
Permission System (RBAC)

A user's effective role is derived from what they own and the team
memberships they hold:

- owner: owns a workspace or an organization
- admin / member / viewer: highest active team-member role

Actions map to the minimum role that may perform them. Unknown actions
are denied.
"""
from typing import Optional
import enum
from sqlalchemy.orm import Session

from teamdesk.models.organization import Organization
from teamdesk.models.team import TeamMember, MemberRole, MemberStatus
from teamdesk.models.workspace import Workspace


class UserRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


ROLE_HIERARCHY = {
    UserRole.OWNER: 4,
    UserRole.ADMIN: 3,
    UserRole.MEMBER: 2,
    UserRole.VIEWER: 1,
}

ACTION_PERMISSIONS = {
    # Team management
    "team:invite": UserRole.ADMIN,
    "team:remove": UserRole.OWNER,
    "team:update_role": UserRole.ADMIN,

    # Workspace management
    "workspace:create": UserRole.OWNER,
    "workspace:delete": UserRole.OWNER,
    "workspace:update": UserRole.ADMIN,
    "workspace:view": UserRole.VIEWER,

    # Content management
    "content:create": UserRole.MEMBER,
    "content:update": UserRole.MEMBER,
    "content:delete": UserRole.ADMIN,
    "content:view": UserRole.VIEWER,

    # Settings
    "settings:billing": UserRole.OWNER,
    "settings:team": UserRole.OWNER,
    "settings:workspace": UserRole.ADMIN,
    "settings:profile": UserRole.VIEWER,
}


def has_role(user_role: Optional[UserRole], required_role: Optional[UserRole]) -> bool:
    """
    Check if user_role is at least required_role.

    Role hierarchy: OWNER > ADMIN > MEMBER > VIEWER. A missing role on
    either side never matches.
    """
    if not user_role or not required_role:
        return False
    return ROLE_HIERARCHY[UserRole(user_role)] >= ROLE_HIERARCHY[UserRole(required_role)]


def can_perform_action(user_role: Optional[UserRole], action: str) -> bool:
    required_role = ACTION_PERMISSIONS.get(action)
    if not required_role:
        return False
    return has_role(user_role, required_role)


def get_user_role(db: Session, user_id: str) -> Optional[UserRole]:
    """
    Get the user's highest role across everything they belong to.

    Returns None for users who own nothing and hold no active membership.
    """
    owns_workspace = db.query(Workspace.id).filter(
        Workspace.owner_id == user_id
    ).first()
    if owns_workspace:
        return UserRole.OWNER

    owns_organization = db.query(Organization.id).filter(
        Organization.owner_id == user_id
    ).first()
    if owns_organization:
        return UserRole.OWNER

    memberships = db.query(TeamMember.role).filter(
        TeamMember.member_user_id == user_id,
        TeamMember.status == MemberStatus.ACTIVE
    ).all()

    if not memberships:
        return None

    roles = {row.role for row in memberships}
    if MemberRole.ADMIN in roles:
        return UserRole.ADMIN
    if MemberRole.MEMBER in roles:
        return UserRole.MEMBER
    return UserRole.VIEWER


def get_user_workspace_role(db: Session, user_id: str, workspace_id: str) -> Optional[UserRole]:
    """
    Get the user's role for one workspace.

    Team members are recorded under the workspace owner, so membership
    is looked up through the owner.
    """
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace:
        return None

    if workspace.owner_id == user_id:
        return UserRole.OWNER

    membership = db.query(TeamMember).filter(
        TeamMember.user_id == workspace.owner_id,
        TeamMember.member_user_id == user_id,
        TeamMember.status == MemberStatus.ACTIVE
    ).first()

    if membership:
        return UserRole(membership.role.value)
    return None


def can_access_workspace(db: Session, user_id: str, workspace_id: str) -> bool:
    return get_user_workspace_role(db, user_id, workspace_id) is not None
