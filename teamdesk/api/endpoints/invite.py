"""
Invitation Link Endpoints

Backs the /invite?token=... page: the token is checked without a
session, accepting it requires signing in with the invited email.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.team import AcceptInviteRequest
from teamdesk.services.team_service import TeamService
from teamdesk.services.email_service import EmailService
from teamdesk.core.exceptions import InvitationNotFoundError
from teamdesk.api.deps import get_current_user, get_email_service
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/invite", tags=["invitations"])


@router.get("/validate")
async def validate_invitation(
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """Describe the invitation behind a token (404 when unusable)."""
    result = TeamService(db).validate_invitation(token)
    if not result["valid"]:
        raise InvitationNotFoundError(result["error"])

    return {"invitation": result["invitation"]}


@router.post("/accept")
async def accept_invitation(
    body: AcceptInviteRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Join the inviting organization as the signed-in user."""
    result = TeamService(db).accept_invitation_with_workspace(body.token, current_user.id)

    if result["inviter_email"]:
        background_tasks.add_task(
            email_service.send_invitation_accepted_notification,
            result["inviter_email"],
            current_user.email,
            current_user.full_name
        )

    return {
        "success": True,
        "workspace_id": result["workspace"]["id"],
        "workspace_name": result["workspace"]["name"],
        "role": result["role"],
    }
