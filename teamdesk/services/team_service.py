"""
Team Service

Invitations and team membership.

A pending invitation is a TeamMember row in status "pending" paired with
a TeamInvitation holding the emailed token. The API identifies an
invitation by its TeamMember id. Accepting fills in member_user_id,
activates the member and deletes the TeamInvitation row.

Members are recorded under the plan owner (the organization owner, in
TeamMember.user_id) and scoped to the organization.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from teamdesk.config import get_settings
from teamdesk.models.organization import Organization
from teamdesk.models.team import TeamMember, TeamInvitation, MemberRole, MemberStatus
from teamdesk.models.user import User
from teamdesk.models.workspace import Workspace
from teamdesk.core.security import generate_invitation_token
from teamdesk.core.exceptions import (
    InvalidInputError,
    InvalidInvitationError,
    InvitationAlreadySentError,
    InvitationEmailMismatchError,
    InvitationNotFoundError,
    InvitationPermissionError,
    MemberAlreadyExistsError,
    NoOrganizationError,
    TeamMemberNotFoundError,
    UserNotFoundError,
    WorkspaceNotFoundError,
)
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.workspace_service import WorkspaceService
from teamdesk.services.user_service import is_disposable_email, normalize_email
from teamdesk.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()


def build_invite_url(token: str) -> str:
    return f"{settings.APP_BASE_URL}/invite?token={token}"


def invitation_expiry() -> datetime:
    return datetime.utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS)


class TeamService:
    def __init__(self, db: Session):
        self.db = db
        self.organizations = OrganizationService(db)
        self.workspaces = WorkspaceService(db)

    # ------------------------------------------------------------------
    # Sending invitations
    # ------------------------------------------------------------------

    def invite_member(self, email: str, role: MemberRole, invited_by: str) -> Dict[str, Any]:
        """
        Invite someone into the inviter's organization.

        Creates a pending TeamMember and its TeamInvitation. Returns the
        records plus what the invitation email needs (inviter name,
        organization name, invite URL); sending the email is up to the
        caller.
        """
        email = normalize_email(email)
        role = MemberRole(role)

        organization = self.organizations.get_user_organization(invited_by)
        if not organization:
            raise NoOrganizationError()

        owner = self.db.query(User).filter(User.id == organization.owner_id).first()
        if owner and owner.email == email:
            raise MemberAlreadyExistsError()

        existing_member = self._find_active_member(organization.id, email)
        if existing_member:
            raise MemberAlreadyExistsError()

        pending = self._find_pending_invitation(organization.id, email)
        if pending:
            if not pending.is_expired:
                raise InvitationAlreadySentError()
            # Expired invitations are replaced
            self.db.delete(pending.team_member)
            self.db.flush()

        team_member = TeamMember(
            user_id=organization.owner_id,
            organization_id=organization.id,
            invited_by=invited_by,
            role=role,
            status=MemberStatus.PENDING
        )
        self.db.add(team_member)
        self.db.flush()

        invitation = TeamInvitation(
            token=generate_invitation_token(),
            email=email,
            team_member_id=team_member.id,
            expires_at=invitation_expiry()
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(team_member)

        logger.info(
            f"Invitation created for {email}",
            extra={
                "user_id": invited_by,
                "organization_id": organization.id,
                "team_member_id": team_member.id,
            }
        )

        return {
            "team_member": team_member,
            "invitation": invitation,
            "inviter_name": self._display_name(invited_by, "A team member"),
            "organization_name": organization.name,
            "invite_url": build_invite_url(invitation.token),
        }

    def check_invite_email(self, email: str, user: User) -> Dict[str, Any]:
        """
        Whether email can be invited into the user's organization.

        Mirrors the checks invite_member makes, but reports the outcome
        as {available, error} instead of raising.
        """
        email = normalize_email(email)

        if email == normalize_email(user.email):
            return {"available": False, "error": "You cannot invite yourself"}
        if is_disposable_email(email):
            return {
                "available": False,
                "error": "Please use a permanent work email address, not a temporary one"
            }

        organization = self.organizations.get_user_organization(user.id)
        if organization:
            pending = self._find_pending_invitation(organization.id, email)
            if pending and not pending.is_expired:
                return {
                    "available": False,
                    "error": "An invitation has already been sent to this email"
                }
            owner_email = self._email_of(organization.owner_id)
            if email == owner_email or self._find_active_member(organization.id, email):
                return {"available": False, "error": "This user is already a team member"}

        return {"available": True, "message": "Email is available for invitation"}

    def get_pending_invitations(self, user_id: str) -> List[Dict[str, Any]]:
        """Pending invitations of the user's organization."""
        organization = self.organizations.get_user_organization(user_id)
        if not organization:
            return []

        rows = self.db.query(TeamMember, TeamInvitation).join(
            TeamInvitation, TeamInvitation.team_member_id == TeamMember.id
        ).filter(
            TeamMember.organization_id == organization.id,
            TeamMember.status == MemberStatus.PENDING
        ).order_by(TeamInvitation.created_at.desc()).all()

        return [
            {
                "team_member_id": member.id,
                "email": invitation.email,
                "role": member.role.value,
                "invited_by": member.invited_by,
                "expires_at": invitation.expires_at,
                "expired": invitation.is_expired,
                "created_at": invitation.created_at,
            }
            for member, invitation in rows
        ]

    def delete_invitation(self, team_member_id: str, user_id: str) -> None:
        """
        Cancel a pending invitation.

        Only the plan owner may cancel, and only while the row is still
        pending. Missing, foreign and already-accepted ids all get the
        same 403, so an accepted member can only be removed through
        remove_member.
        """
        if not team_member_id:
            raise InvalidInputError("Team member ID is required for deletion")

        member = self.db.query(TeamMember).filter(
            TeamMember.id == team_member_id,
            TeamMember.status == MemberStatus.PENDING
        ).first()

        if not member or member.user_id != user_id:
            log_security_event(
                "invitation_delete_refused",
                {"user_id": user_id, "team_member_id": team_member_id},
                logger
            )
            raise InvitationPermissionError()

        # Invitation first, it references the member row
        self.db.query(TeamInvitation).filter(
            TeamInvitation.team_member_id == team_member_id
        ).delete(synchronize_session=False)
        self.db.query(TeamMember).filter(
            TeamMember.id == team_member_id
        ).delete(synchronize_session=False)
        self.db.commit()

        logger.info(
            f"Invitation {team_member_id} cancelled",
            extra={"user_id": user_id, "team_member_id": team_member_id}
        )

    def resend_invitation(
        self,
        team_member_id: str,
        organization_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Issue a fresh token and expiry for a pending invitation."""
        query = self.db.query(TeamInvitation).join(
            TeamMember, TeamMember.id == TeamInvitation.team_member_id
        ).filter(TeamInvitation.team_member_id == team_member_id)
        if organization_id:
            query = query.filter(TeamMember.organization_id == organization_id)

        invitation = query.first()
        if not invitation:
            raise InvitationNotFoundError()

        invitation.token = generate_invitation_token()
        invitation.expires_at = invitation_expiry()
        self.db.commit()
        self.db.refresh(invitation)

        member = invitation.team_member
        organization = member.organization

        return {
            "team_member": member,
            "invitation": invitation,
            "inviter_name": self._display_name(member.invited_by, "A team member"),
            "organization_name": organization.name if organization else None,
            "invite_url": build_invite_url(invitation.token),
        }

    # ------------------------------------------------------------------
    # Invitation links
    # ------------------------------------------------------------------

    def validate_invitation(self, token: str) -> Dict[str, Any]:
        """
        Describe the invitation behind an emailed token.

        Never raises for a bad token: the result has valid=False and an
        error message instead.
        """
        invitation = self._find_live_invitation(token)
        if not invitation:
            return {"valid": False, "error": "Invalid or expired invitation"}

        member = invitation.team_member
        if not member:
            return {"valid": False, "error": "Team member record not found"}

        workspace = self.workspaces.get_primary_workspace(member.user_id)
        if not workspace:
            return {"valid": False, "error": "Workspace not found"}

        inviter = self.db.query(User).filter(User.id == member.invited_by).first()

        return {
            "valid": True,
            "invitation": {
                "id": invitation.id,
                "email": invitation.email,
                "expires_at": invitation.expires_at,
                "role": member.role.value,
                "workspace": {"id": workspace.id, "name": workspace.name},
                "inviter": {
                    "name": inviter.display_name if inviter else "Someone",
                    "email": inviter.email if inviter else "",
                },
            },
        }

    def accept_invitation_with_workspace(self, token: str, user_id: str) -> Dict[str, Any]:
        """
        Accept an invitation from its emailed token.

        The signed-in user's email must match the invitation. All writes
        happen in one commit.
        """
        invitation = self._find_live_invitation(token)
        if not invitation:
            raise InvalidInvitationError()

        member = invitation.team_member
        if not member:
            raise InvalidInvitationError("Team member record not found")

        workspace = self.workspaces.get_primary_workspace(member.user_id)
        if not workspace:
            raise WorkspaceNotFoundError()

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise UserNotFoundError()

        if normalize_email(user.email) != normalize_email(invitation.email):
            raise InvitationEmailMismatchError(invitation.email, user.email)

        self._ensure_not_member(member, user.id, "You are already a member of this workspace")
        self._activate(member, invitation, user.id)

        return {
            "workspace": {"id": workspace.id, "name": workspace.name},
            "role": member.role.value,
            "team_member": member,
            "inviter_email": self._email_of(member.invited_by),
        }

    # ------------------------------------------------------------------
    # Invitations addressed to the signed-in user
    # ------------------------------------------------------------------

    def get_invitations_for_email(self, email: str) -> List[Dict[str, Any]]:
        """Unexpired pending invitations addressed to email, newest first."""
        rows = self.db.query(TeamMember, TeamInvitation, Organization).join(
            TeamInvitation, TeamInvitation.team_member_id == TeamMember.id
        ).outerjoin(
            Organization, Organization.id == TeamMember.organization_id
        ).filter(
            TeamInvitation.email == normalize_email(email),
            TeamInvitation.expires_at > datetime.utcnow(),
            TeamMember.status == MemberStatus.PENDING
        ).order_by(TeamInvitation.created_at.desc()).all()

        invitations = []
        for member, invitation, organization in rows:
            inviter = self.db.query(User).filter(User.id == member.invited_by).first()
            invitations.append({
                "id": member.id,
                "organization_id": member.organization_id,
                "organization_name": organization.name if organization else None,
                "role": member.role.value,
                "invited_by_name": inviter.display_name if inviter else None,
                "invited_by_email": inviter.email if inviter else None,
                "expires_at": invitation.expires_at,
                "created_at": invitation.created_at,
            })
        return invitations

    def accept_invitation_by_id(self, team_member_id: str, user: User) -> TeamMember:
        member, invitation = self._get_invitation_for_user(team_member_id, user)

        if invitation.is_expired:
            raise InvalidInvitationError("Invitation has expired")

        self._ensure_not_member(member, user.id)
        self._activate(member, invitation, user.id)
        return member

    def decline_invitation(self, team_member_id: str, user: User) -> None:
        member, invitation = self._get_invitation_for_user(team_member_id, user)

        self.db.delete(invitation)
        self.db.delete(member)
        self.db.commit()

        logger.info(
            f"Invitation {team_member_id} declined",
            extra={"user_id": user.id, "team_member_id": team_member_id}
        )

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def get_team_members(self, user_id: str) -> List[Dict[str, Any]]:
        """Active members of the user's organization."""
        organization = self.organizations.get_user_organization(user_id)
        if not organization:
            return []

        rows = self.db.query(TeamMember, User).join(
            User, User.id == TeamMember.member_user_id
        ).filter(
            TeamMember.organization_id == organization.id,
            TeamMember.status == MemberStatus.ACTIVE
        ).order_by(TeamMember.created_at).all()

        return [
            {
                "id": member.id,
                "role": member.role.value,
                "status": member.status.value,
                "created_at": member.created_at,
                "member": {
                    "id": user.id,
                    "email": user.email,
                    "full_name": user.full_name,
                },
            }
            for member, user in rows
        ]

    def update_member_role(
        self,
        team_member_id: str,
        role: MemberRole,
        organization_id: Optional[str] = None,
    ) -> TeamMember:
        member = self._get_member(team_member_id, organization_id)
        member.role = MemberRole(role)
        self.db.commit()
        self.db.refresh(member)

        logger.info(
            f"Team member {team_member_id} role changed to {member.role.value}",
            extra={"team_member_id": team_member_id}
        )
        return member

    def remove_member(
        self,
        team_member_id: str,
        organization_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Delete a team member, or a pending invitation together with its row.

        Returns the removed member's email and status so the caller can
        notify them.
        """
        member = self._get_member(team_member_id, organization_id)

        if member.invitation:
            email = member.invitation.email
        else:
            email = member.member.email if member.member else None

        removed = {
            "team_member_id": member.id,
            "email": email,
            "status": member.status.value,
            "organization_name": member.organization.name if member.organization else None,
        }

        self.db.delete(member)
        self.db.commit()

        logger.info(f"Team member {team_member_id} removed", extra={"team_member_id": team_member_id})
        return removed

    def get_workspace_members(self, workspace_id: str) -> List[Dict[str, Any]]:
        workspace = self.workspaces.get_by_id(workspace_id)
        if not workspace:
            raise WorkspaceNotFoundError()

        rows = self.db.query(TeamMember, User).join(
            User, User.id == TeamMember.member_user_id
        ).filter(
            TeamMember.user_id == workspace.owner_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).all()

        return [
            {
                "id": member.id,
                "role": member.role.value,
                "joined_at": member.updated_at,
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "full_name": user.full_name,
                },
            }
            for member, user in rows
        ]

    def is_workspace_member(self, workspace_id: str, user_id: str) -> bool:
        workspace = self.workspaces.get_by_id(workspace_id)
        if not workspace:
            return False

        return self.db.query(TeamMember.id).filter(
            TeamMember.user_id == workspace.owner_id,
            TeamMember.member_user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE
        ).first() is not None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_active_member(self, organization_id: str, email: str) -> Optional[TeamMember]:
        return self.db.query(TeamMember).join(
            User, User.id == TeamMember.member_user_id
        ).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.status == MemberStatus.ACTIVE,
            User.email == email
        ).first()

    def _find_pending_invitation(self, organization_id: str, email: str) -> Optional[TeamInvitation]:
        return self.db.query(TeamInvitation).join(
            TeamMember, TeamMember.id == TeamInvitation.team_member_id
        ).filter(
            TeamMember.organization_id == organization_id,
            TeamMember.status == MemberStatus.PENDING,
            TeamInvitation.email == email
        ).first()

    def _find_live_invitation(self, token: str) -> Optional[TeamInvitation]:
        if not token:
            return None
        return self.db.query(TeamInvitation).filter(
            TeamInvitation.token == token,
            TeamInvitation.expires_at > datetime.utcnow()
        ).first()

    def _get_invitation_for_user(self, team_member_id: str, user: User):
        row = self.db.query(TeamMember, TeamInvitation).join(
            TeamInvitation, TeamInvitation.team_member_id == TeamMember.id
        ).filter(
            TeamMember.id == team_member_id,
            TeamMember.status == MemberStatus.PENDING,
            TeamInvitation.email == normalize_email(user.email)
        ).first()

        if not row:
            raise InvitationNotFoundError("Invitation not found or already processed")
        return row

    def _get_member(self, team_member_id: str, organization_id: Optional[str]) -> TeamMember:
        query = self.db.query(TeamMember).filter(TeamMember.id == team_member_id)
        if organization_id:
            query = query.filter(TeamMember.organization_id == organization_id)

        member = query.first()
        if not member:
            raise TeamMemberNotFoundError()
        return member

    def _ensure_not_member(
        self,
        member: TeamMember,
        user_id: str,
        detail: str = "User is already a team member",
    ) -> None:
        query = self.db.query(TeamMember.id).filter(
            TeamMember.member_user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE
        )
        if member.organization_id:
            query = query.filter(TeamMember.organization_id == member.organization_id)
        else:
            query = query.filter(TeamMember.user_id == member.user_id)

        if query.first():
            raise MemberAlreadyExistsError(detail)

    def _activate(self, member: TeamMember, invitation: TeamInvitation, user_id: str) -> None:
        member.member_user_id = user_id
        member.status = MemberStatus.ACTIVE
        member.updated_at = datetime.utcnow()
        self.db.delete(invitation)
        self.db.commit()
        self.db.refresh(member)

        logger.info(
            f"Invitation {member.id} accepted",
            extra={"user_id": user_id, "team_member_id": member.id}
        )

    def _display_name(self, user_id: Optional[str], fallback: str) -> str:
        user = self.db.query(User).filter(User.id == user_id).first() if user_id else None
        return user.display_name if user else fallback

    def _email_of(self, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        user = self.db.query(User).filter(User.id == user_id).first()
        return user.email if user else None
