"""
Onboarding Endpoints

The signup wizard: progress is saved step by step, step 2 sets up the
organization, and the final submission writes every answer, creates
the workspace if needed and sends the listed team invitations.
"""
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.auth import SessionData
from teamdesk.schemas.onboarding import (
    CompleteOnboardingResponse,
    OnboardingProgressResponse,
    OnboardingStatusResponse,
    OnboardingSubmission,
    ProgressUpdate,
    SaveProgressResponse,
    Step2Request,
)
from teamdesk.services.onboarding_service import OnboardingService
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.workspace_service import WorkspaceService
from teamdesk.services.team_service import TeamService
from teamdesk.services.email_service import EmailService
from teamdesk.core.exceptions import (
    InvalidWorkspaceError,
    OnboardingAlreadyCompletedError,
    ServiceError,
    UserNotFoundError,
)
from teamdesk.api.deps import get_current_session, get_current_user, get_email_service
from teamdesk.api.endpoints.team import schedule_invitation_email
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

DEFAULT_WORKSPACE_NAME = "Default Workspace"


@router.get("", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Whether onboarding is done, with the primary workspace once it is."""
    progress = OnboardingService(db).get_progress(session.user_id)
    if not progress:
        raise UserNotFoundError()

    workspace = None
    if progress["onboarding_completed"]:
        primary = WorkspaceService(db).get_primary_workspace(session.user_id)
        if primary:
            workspace = {"id": primary.id, "name": primary.name}

    return OnboardingStatusResponse(
        onboarding_completed=progress["onboarding_completed"],
        onboarding_completed_at=progress["onboarding_completed_at"],
        workspace=workspace
    )


@router.get(
    "/progress",
    response_model=OnboardingProgressResponse,
    response_model_exclude_unset=True
)
async def get_onboarding_progress(
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """
    Saved wizard answers for the signed-in user.

    Completed users are pointed at the dashboard instead.
    """
    try:
        progress = OnboardingService(db).get_progress(session.user_id)
        workspace = WorkspaceService(db).get_primary_workspace(session.user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error fetching onboarding progress", extra={"user_id": session.user_id})
        raise ServiceError("Failed to fetch progress")

    if not progress:
        raise UserNotFoundError()

    if progress["onboarding_completed"]:
        return OnboardingProgressResponse(
            completed=True,
            onboarding_completed=True,
            redirect_to="/dashboard"
        )

    workspace_id = workspace.id if workspace else None
    workspace_name = workspace.name if workspace else ""

    return OnboardingProgressResponse(
        completed=False,
        onboarding_completed=False,
        data={
            **progress["onboarding_data"],
            "workspace_id": workspace_id,
            "workspace_name": workspace_name,
        },
        onboarding_data=progress["onboarding_data"],
        workspace_id=workspace_id,
        workspace_name=workspace_name
    )


@router.post("/progress", response_model=SaveProgressResponse)
async def save_onboarding_progress(
    update: ProgressUpdate,
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Save one step of the wizard."""
    return OnboardingService(db).save_progress(session.user_id, update.step, update.data)


@router.post("/step2")
async def save_step2(
    step: Step2Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create the user's organization and default workspace, then save the
    step 2 answers.

    Users who already have an organization keep it.
    """
    organizations = OrganizationService(db)
    workspaces = WorkspaceService(db)

    organization = organizations.get_user_organization(current_user.id)
    workspace = workspaces.get_primary_workspace(current_user.id)

    if not organization:
        organization = organizations.create(step.organization_name, current_user.id)
        if workspace:
            workspace.organization_id = organization.id
            db.commit()
        else:
            workspace = workspaces.create(
                name=DEFAULT_WORKSPACE_NAME,
                owner_id=current_user.id,
                organization_id=organization.id,
                created_by_id=current_user.id
            )

    OnboardingService(db).save_progress(
        current_user.id,
        2,
        step.model_dump(exclude={"organization_name"}, exclude_none=True)
    )

    return {
        "success": True,
        "organization_id": organization.id,
        "organization_name": organization.name,
        "workspace_id": workspace.id if workspace else None,
        "message": "Organization created successfully",
    }


@router.post("", response_model=CompleteOnboardingResponse)
async def complete_onboarding(
    submission: OnboardingSubmission,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Finish onboarding.

    Team invitations that fail (already a member, already invited) are
    logged and skipped; they never block completion.
    """
    onboarding = OnboardingService(db)
    if onboarding.is_completed(current_user.id):
        raise OnboardingAlreadyCompletedError()

    workspace_id = _resolve_workspace(db, current_user, submission)

    team = TeamService(db)
    for member in submission.team_members:
        try:
            result = team.invite_member(member.email, member.role, current_user.id)
        except HTTPException as e:
            logger.warning(
                f"Skipping onboarding invitation for {member.email}: {e.detail}",
                extra={"user_id": current_user.id}
            )
            continue
        schedule_invitation_email(background_tasks, email_service, result)

    user = onboarding.complete_onboarding(current_user.id, submission)

    background_tasks.add_task(
        email_service.track_onboarding_complete,
        user.email,
        user.id,
        workspace_id,
        user.onboarding_completed_at or datetime.utcnow()
    )

    return CompleteOnboardingResponse(workspace_id=workspace_id)


def _resolve_workspace(db: Session, user: User, submission: OnboardingSubmission) -> str:
    """
    The workspace onboarding completes into.

    An explicit workspace_id must belong to the user. Otherwise the
    primary workspace is used, creating it (and an organization named
    after it) when the user has none.
    """
    workspaces = WorkspaceService(db)

    if submission.workspace_id:
        if not workspaces.verify_ownership(submission.workspace_id, user.id):
            raise InvalidWorkspaceError()
        return submission.workspace_id

    workspace = workspaces.get_primary_workspace(user.id)
    if workspace:
        return workspace.id

    organizations = OrganizationService(db)
    organization = organizations.get_user_organization(user.id)
    if not organization:
        name = submission.workspace_name
        if organizations.name_exists(name):
            name = f"{name} {user.id[:8]}"
        organization = organizations.create(name, user.id)

    workspace = workspaces.create(
        name=submission.workspace_name,
        owner_id=user.id,
        organization_id=organization.id,
        created_by_id=user.id
    )
    return workspace.id
