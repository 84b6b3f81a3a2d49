"""
Current User Endpoints

The signed-in user's own account: profile, role, the organizations they
belong to and the invitations addressed to them.
"""
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.auth import SessionData
from teamdesk.schemas.organization import LeaveOrganizationResponse, OrganizationListResponse
from teamdesk.schemas.team import UserInvitationListResponse
from teamdesk.schemas.user import PasswordChange, ProfileUpdate, RoleResponse, UserResponse
from teamdesk.services.user_service import UserService
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.team_service import TeamService
from teamdesk.services.email_service import EmailService
from teamdesk.core.exceptions import ServiceError, UserNotFoundError
from teamdesk.core.permissions import ACTION_PERMISSIONS, can_perform_action, get_user_role
from teamdesk.api.deps import get_current_session, get_current_user, get_email_service
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService(db).update_profile(current_user, full_name=update.full_name)


@router.patch("/password")
async def change_password(
    change: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UserService(db).change_password(current_user, change.current_password, change.new_password)
    return {"success": True, "message": "Password updated successfully"}


@router.get("/role", response_model=RoleResponse)
async def get_role(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Effective role and the actions it allows."""
    role = get_user_role(db, current_user.id)
    permissions = [action for action in ACTION_PERMISSIONS if can_perform_action(role, action)]
    return RoleResponse(role=role.value if role else None, permissions=permissions)


@router.get("/organizations", response_model=OrganizationListResponse)
async def list_organizations(
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """
    Every organization the user owns or is an active member of.

    Newest first, each with the user's role and the member count.
    """
    try:
        user = UserService(db).find_by_email(session.email)
        organizations = (
            OrganizationService(db).get_all_user_organizations(user.id) if user else None
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error fetching organizations", extra={"user_id": session.user_id})
        raise ServiceError("Failed to fetch organizations")

    if not user:
        raise UserNotFoundError()

    return {"organizations": organizations}


@router.post("/organizations/{organization_id}/leave", response_model=LeaveOrganizationResponse)
async def leave_organization(
    organization_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Leave an organization. Owners cannot leave their own."""
    organization = OrganizationService(db).leave_organization(current_user, organization_id)

    owner = UserService(db).find_by_id(organization.owner_id)
    if owner:
        background_tasks.add_task(
            email_service.notify_member_left,
            owner.email,
            current_user.email,
            organization.name
        )

    return LeaveOrganizationResponse(
        message=f"You have left {organization.name}",
        organization_id=organization.id
    )


@router.get("/invitations", response_model=UserInvitationListResponse)
async def list_my_invitations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending invitations addressed to the user's email."""
    return {"invitations": TeamService(db).get_invitations_for_email(current_user.email)}


@router.post("/invitations/{team_member_id}/accept")
async def accept_my_invitation(
    team_member_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    member = TeamService(db).accept_invitation_by_id(team_member_id, current_user)

    inviter = UserService(db).find_by_id(member.invited_by) if member.invited_by else None
    if inviter:
        background_tasks.add_task(
            email_service.send_invitation_accepted_notification,
            inviter.email,
            current_user.email,
            current_user.full_name
        )

    return {
        "success": True,
        "organization_id": member.organization_id,
        "role": member.role.value,
    }


@router.post("/invitations/{team_member_id}/decline")
async def decline_my_invitation(
    team_member_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    TeamService(db).decline_invitation(team_member_id, current_user)
    return {"success": True}
