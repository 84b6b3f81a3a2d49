"""
Organization Service

An organization has one owner (never stored in team_members) and any
number of active team members. Every listing here treats the owner as
an implicit member.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from teamdesk.models.organization import Organization
from teamdesk.models.team import TeamMember, MemberStatus
from teamdesk.models.user import User
from teamdesk.models.workspace import Workspace
from teamdesk.core.exceptions import (
    DuplicateOrganizationError,
    OrganizationNotFoundError,
    OwnerCannotLeaveError,
)
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)


class OrganizationService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, owner_id: str) -> Organization:
        """
        Create an organization owned by owner_id.

        Organization names are unique regardless of case.
        """
        name = name.strip()
        if self.name_exists(name):
            raise DuplicateOrganizationError(name)

        organization = Organization(name=name, owner_id=owner_id)
        self.db.add(organization)
        self.db.commit()
        self.db.refresh(organization)

        logger.info(
            f"Organization created: {organization.id}",
            extra={"organization_id": organization.id, "user_id": owner_id}
        )
        return organization

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Case-insensitive; exclude_id skips the organization being renamed."""
        query = self.db.query(Organization.id).filter(
            func.lower(Organization.name) == name.strip().lower()
        )
        if exclude_id:
            query = query.filter(Organization.id != exclude_id)
        return query.first() is not None

    def get_by_id(self, organization_id: str) -> Optional[Organization]:
        return self.db.query(Organization).filter(
            Organization.id == organization_id
        ).first()

    def get_user_organization(self, user_id: str) -> Optional[Organization]:
        """The organization the user owns, else the first one they are an active member of."""
        owned = self.db.query(Organization).filter(
            Organization.owner_id == user_id
        ).order_by(Organization.created_at).first()
        if owned:
            return owned

        membership = self.db.query(TeamMember).filter(
            TeamMember.member_user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE,
            TeamMember.organization_id.isnot(None)
        ).first()
        if membership:
            return self.get_by_id(membership.organization_id)

        return None

    def get_all_user_organizations(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Every organization the user belongs to, newest first.

        Each entry carries the user's role there ("owner" for owned
        organizations) and member_count, which includes the owner.
        """
        organizations = []

        owned = self.db.query(Organization).filter(
            Organization.owner_id == user_id
        ).all()
        for org in owned:
            organizations.append(self._summary(org, "owner"))

        memberships = self.db.query(TeamMember, Organization).join(
            Organization, Organization.id == TeamMember.organization_id
        ).filter(
            TeamMember.member_user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).all()
        for membership, org in memberships:
            organizations.append(self._summary(org, membership.role.value))

        organizations.sort(key=lambda o: o["created_at"], reverse=True)
        return organizations

    def count_active_members(self, organization_id: str) -> int:
        return self.db.query(func.count(TeamMember.id)).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).scalar() or 0

    def get_organization_workspaces(self, organization_id: str) -> List[Workspace]:
        return self.db.query(Workspace).filter(
            Workspace.organization_id == organization_id
        ).order_by(Workspace.created_at).all()

    def get_organization_members(self, organization_id: str) -> List[Dict[str, Any]]:
        """Owner first, then active members."""
        org = self.get_by_id(organization_id)
        if not org:
            return []

        members = []
        owner = self.db.query(User).filter(User.id == org.owner_id).first()
        if owner:
            members.append({
                "id": owner.id,
                "email": owner.email,
                "name": owner.full_name,
                "role": "owner",
            })

        rows = self.db.query(TeamMember, User).join(
            User, User.id == TeamMember.member_user_id
        ).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).all()
        for membership, user in rows:
            members.append({
                "id": user.id,
                "email": user.email,
                "name": user.full_name,
                "role": membership.role.value,
            })

        return members

    def update(self, organization_id: str, name: str) -> Organization:
        org = self.get_by_id(organization_id)
        if not org:
            raise OrganizationNotFoundError()

        name = name.strip()
        if self.name_exists(name, exclude_id=org.id):
            raise DuplicateOrganizationError(name)

        org.name = name
        self.db.commit()
        self.db.refresh(org)
        return org

    def user_belongs_to_organization(self, user_id: str, organization_id: str) -> bool:
        owns = self.db.query(Organization.id).filter(
            Organization.id == organization_id,
            Organization.owner_id == user_id
        ).first()
        if owns:
            return True

        membership = self.db.query(TeamMember.id).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.member_user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).first()
        return membership is not None

    def leave_organization(self, user: User, organization_id: str) -> Organization:
        """
        Remove the user's active membership from an organization.

        Owners cannot leave. Returns the organization left.
        """
        org = self.get_by_id(organization_id)
        if not org:
            raise OrganizationNotFoundError()

        if org.owner_id == user.id:
            raise OwnerCannotLeaveError()

        membership = self.db.query(TeamMember).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.member_user_id == user.id,
            TeamMember.status == MemberStatus.ACTIVE
        ).first()
        if not membership:
            raise OrganizationNotFoundError("You are not a member of this organization")

        self.db.delete(membership)
        self.db.commit()

        logger.info(
            f"User {user.id} left organization {organization_id}",
            extra={"user_id": user.id, "organization_id": organization_id}
        )
        return org

    def _summary(self, org: Organization, role: str) -> Dict[str, Any]:
        return {
            "id": org.id,
            "name": org.name,
            "created_at": org.created_at,
            "role": role,
            "member_count": self.count_active_members(org.id) + 1,
        }
