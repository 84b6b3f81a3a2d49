"""
Workspace Endpoints

RBAC:
- List workspaces / current workspace / name check: any signed-in user
- Create workspace: owner
- Update a workspace: admin or higher on that workspace
- Delete a workspace: its owner
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.models.workspace import Workspace
from teamdesk.schemas.organization import AvailabilityResponse
from teamdesk.schemas.workspace import (
    CurrentWorkspaceResponse,
    WorkspaceCreate,
    WorkspaceNameCheck,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from teamdesk.schemas.onboarding import validate_display_name
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.workspace_service import WorkspaceService
from teamdesk.core.exceptions import InvalidInputError, PermissionDenied, WorkspaceNotFoundError
from teamdesk.core.permissions import can_access_workspace, can_perform_action, get_user_workspace_role
from teamdesk.api.deps import Authorized, get_current_user, require_action
from teamdesk.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

router = APIRouter(tags=["workspaces"])


def _accessible_workspaces(db: Session, user: User) -> List[Workspace]:
    """Owned workspaces first, then those of the user's organization."""
    workspaces = WorkspaceService(db).get_by_owner_id(user.id)
    seen = {w.id for w in workspaces}

    organization = OrganizationService(db).get_user_organization(user.id)
    if organization:
        for workspace in OrganizationService(db).get_organization_workspaces(organization.id):
            if workspace.id not in seen:
                workspaces.append(workspace)
                seen.add(workspace.id)

    return workspaces


def _workspace_for_action(db: Session, user: User, workspace_id: str, action: str) -> Workspace:
    """
    Load a workspace the user may perform action on.

    The role is the one the user holds on this workspace, not their
    highest role anywhere. Workspaces they cannot see at all are 404.
    """
    role = get_user_workspace_role(db, user.id, workspace_id)
    if role is None:
        raise WorkspaceNotFoundError()

    if not can_perform_action(role, action):
        log_security_event(
            "permission_denied",
            {"user_id": user.id, "workspace_id": workspace_id, "action": action, "role": role.value},
            logger
        )
        raise PermissionDenied()

    return WorkspaceService(db).get_by_id(workspace_id)


@router.get("/workspaces", response_model=List[WorkspaceResponse])
async def list_workspaces(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _accessible_workspaces(db, current_user)


@router.post("/workspaces", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    workspace: WorkspaceCreate,
    auth: Authorized = Depends(require_action("workspace:create")),
    db: Session = Depends(get_db)
):
    """Create a workspace inside the owner's organization."""
    organization = OrganizationService(db).get_user_organization(auth.user.id)
    organization_id: Optional[str] = None
    if organization and organization.owner_id == auth.user.id:
        organization_id = organization.id

    return WorkspaceService(db).create(
        name=workspace.name,
        owner_id=auth.user.id,
        organization_id=organization_id,
        created_by_id=auth.user.id
    )


@router.put("/workspaces/{workspace_id}")
async def update_workspace(
    workspace_id: str,
    changes: WorkspaceUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rename a workspace or toggle white labelling."""
    workspace = _workspace_for_action(db, current_user, workspace_id, "workspace:update")

    updated = WorkspaceService(db).update(
        workspace.id,
        name=changes.name,
        white_label_enabled=changes.white_label_enabled
    )
    logger.info(
        f"Workspace updated: {workspace.id}",
        extra={"user_id": current_user.id, "workspace_id": workspace.id}
    )
    return {"workspace": WorkspaceResponse.model_validate(updated)}


@router.delete("/workspaces/{workspace_id}")
async def delete_workspace(
    workspace_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    workspace = _workspace_for_action(db, current_user, workspace_id, "workspace:delete")
    WorkspaceService(db).delete(workspace.id)
    return {"success": True, "message": "Workspace deleted successfully"}


@router.post("/workspace/check-name", response_model=AvailabilityResponse)
async def check_workspace_name(
    check: WorkspaceNameCheck,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Whether a workspace name is free.

    Names are unique per owner: a new workspace is checked against the
    caller's own workspaces, a rename against the owner of the workspace
    being renamed, excluding that workspace.
    """
    try:
        name = validate_display_name(check.name, "Workspace name")
    except ValueError:
        raise InvalidInputError("Invalid workspace name format")

    service = WorkspaceService(db)
    owner_id = current_user.id
    exclude_id = None
    if check.current_workspace_id and can_access_workspace(db, current_user.id, check.current_workspace_id):
        owner_id = service.get_by_id(check.current_workspace_id).owner_id
        exclude_id = check.current_workspace_id

    if service.name_exists(name, owner_id, exclude_id=exclude_id):
        return AvailabilityResponse(
            available=False,
            message=f'You already have a workspace named "{name}". Please choose a different name.'
        )
    return AvailabilityResponse(available=True, message="This workspace name is available")


@router.get("/workspace/current", response_model=CurrentWorkspaceResponse)
async def get_current_workspace(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The first accessible workspace and the user's role in it."""
    workspaces = _accessible_workspaces(db, current_user)
    if not workspaces:
        return CurrentWorkspaceResponse()

    workspace = workspaces[0]
    role = get_user_workspace_role(db, current_user.id, workspace.id)
    return CurrentWorkspaceResponse(
        workspace=WorkspaceResponse.model_validate(workspace),
        role=role.value if role else None
    )
