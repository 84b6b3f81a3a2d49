"""
Team Management Endpoints

Invitations and members of the signed-in user's organization.

RBAC:
- List invitations/members, check an email: any signed-in user
- Invite, resend, cancel invitations: admin or higher
- Change a member's role: admin or higher
- Remove a member: owner
"""
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.organization import AvailabilityResponse
from teamdesk.schemas.team import (
    EmailCheckRequest,
    InvitationListResponse,
    InviteRequest,
    InviteResponse,
    MemberRoleUpdate,
    ResendResponse,
    TeamMemberListResponse,
)
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.team_service import TeamService
from teamdesk.services.email_service import EmailService
from teamdesk.core.exceptions import OrganizationNotFoundError, ServiceError
from teamdesk.api.deps import Authorized, get_current_user, get_email_service, require_action
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/team", tags=["team"])


def schedule_invitation_email(
    background_tasks: BackgroundTasks,
    email_service: EmailService,
    result: Dict[str, Any],
) -> None:
    """Queue the invitation email for an invite_member/resend_invitation result."""
    invitation = result["invitation"]
    background_tasks.add_task(
        email_service.send_team_invitation,
        invitation.email,
        result["inviter_name"],
        result["team_member"].role.value,
        result["invite_url"],
        invitation.expires_at,
        result["organization_name"]
    )


def _organization_id(db: Session, user: User) -> str:
    organization = OrganizationService(db).get_user_organization(user.id)
    if not organization:
        raise OrganizationNotFoundError()
    return organization.id


@router.post("/invitations", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    invite: InviteRequest,
    background_tasks: BackgroundTasks,
    auth: Authorized = Depends(require_action("team:invite")),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Invite someone into the organization by email."""
    result = TeamService(db).invite_member(invite.email, invite.role, auth.user.id)
    schedule_invitation_email(background_tasks, email_service, result)

    invitation = result["invitation"]
    return InviteResponse(
        team_member_id=result["team_member"].id,
        email=invitation.email,
        role=result["team_member"].role.value,
        expires_at=invitation.expires_at
    )


@router.post("/check-email", response_model=AvailabilityResponse)
async def check_email(
    check: EmailCheckRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Whether an address can be invited, checked as the invite form is filled in."""
    return TeamService(db).check_invite_email(check.email, current_user)


@router.get("/invitations", response_model=InvitationListResponse)
async def list_invitations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending invitations of the user's organization."""
    return {"invitations": TeamService(db).get_pending_invitations(current_user.id)}


@router.post("/invitations/{team_member_id}/resend", response_model=ResendResponse)
async def resend_invitation(
    team_member_id: str,
    background_tasks: BackgroundTasks,
    auth: Authorized = Depends(require_action("team:invite")),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Issue a fresh link for a pending invitation and email it again."""
    result = TeamService(db).resend_invitation(
        team_member_id,
        organization_id=_organization_id(db, auth.user)
    )
    schedule_invitation_email(background_tasks, email_service, result)

    return ResendResponse(expires_at=result["invitation"].expires_at)


@router.delete("/invitations/{team_member_id}")
async def cancel_invitation(
    team_member_id: str,
    auth: Authorized = Depends(require_action("team:invite")),
    db: Session = Depends(get_db)
):
    """
    Cancel a pending invitation.

    Only the plan owner may cancel, and only while it is still pending
    (403 otherwise). Accepted members go through DELETE /members/{id}.
    """
    try:
        TeamService(db).delete_invitation(team_member_id, auth.user.id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Error cancelling invitation",
            extra={"user_id": auth.user.id, "team_member_id": team_member_id}
        )
        raise ServiceError("Failed to cancel invitation")

    return {"success": True}


@router.get("/members", response_model=TeamMemberListResponse)
async def list_members(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Active members of the user's organization."""
    return {"members": TeamService(db).get_team_members(current_user.id)}


@router.patch("/members/{team_member_id}")
async def update_member_role(
    team_member_id: str,
    update: MemberRoleUpdate,
    auth: Authorized = Depends(require_action("team:update_role")),
    db: Session = Depends(get_db)
):
    member = TeamService(db).update_member_role(
        team_member_id,
        update.role,
        organization_id=_organization_id(db, auth.user)
    )
    return {"success": True, "team_member_id": member.id, "role": member.role.value}


@router.delete("/members/{team_member_id}")
async def remove_member(
    team_member_id: str,
    background_tasks: BackgroundTasks,
    auth: Authorized = Depends(require_action("team:remove")),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Remove a member, or withdraw a pending invitation."""
    removed = TeamService(db).remove_member(
        team_member_id,
        organization_id=_organization_id(db, auth.user)
    )

    if removed["email"] and removed["status"] == "active":
        background_tasks.add_task(
            email_service.track_member_removed,
            removed["email"],
            removed["organization_name"]
        )

    return {"success": True, "team_member_id": removed["team_member_id"]}
