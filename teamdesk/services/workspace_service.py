"""
Workspace Service
"""
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from teamdesk.models.workspace import Workspace
from teamdesk.core.exceptions import DuplicateWorkspaceError, WorkspaceNotFoundError
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)


class WorkspaceService:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        name: str,
        owner_id: str,
        organization_id: Optional[str] = None,
        created_by_id: Optional[str] = None,
    ) -> Workspace:
        """Create a workspace. Names must be unique per owner."""
        if self.name_exists(name, owner_id):
            raise DuplicateWorkspaceError(name)

        workspace = Workspace(
            name=name,
            owner_id=owner_id,
            organization_id=organization_id,
            created_by_id=created_by_id or owner_id,
            white_label_enabled=False
        )

        self.db.add(workspace)
        self.db.commit()
        self.db.refresh(workspace)

        logger.info(f"Workspace created: {workspace.id} for owner {owner_id}")
        return workspace

    def name_exists(self, name: str, owner_id: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Workspace.id).filter(
            Workspace.owner_id == owner_id,
            func.lower(Workspace.name) == name.strip().lower()
        )
        if exclude_id:
            query = query.filter(Workspace.id != exclude_id)
        return query.first() is not None

    def get_by_id(self, workspace_id: str) -> Optional[Workspace]:
        return self.db.query(Workspace).filter(Workspace.id == workspace_id).first()

    def get_by_owner_id(self, owner_id: str) -> List[Workspace]:
        return self.db.query(Workspace).filter(
            Workspace.owner_id == owner_id
        ).order_by(Workspace.created_at).all()

    def get_primary_workspace(self, owner_id: str) -> Optional[Workspace]:
        """The owner's oldest workspace."""
        return self.db.query(Workspace).filter(
            Workspace.owner_id == owner_id
        ).order_by(Workspace.created_at).first()

    def update(
        self,
        workspace_id: str,
        name: Optional[str] = None,
        white_label_enabled: Optional[bool] = None,
    ) -> Workspace:
        workspace = self.get_by_id(workspace_id)
        if not workspace:
            raise WorkspaceNotFoundError()

        if name is not None and name != workspace.name:
            if self.name_exists(name, workspace.owner_id, exclude_id=workspace.id):
                raise DuplicateWorkspaceError(name)
            workspace.name = name

        if white_label_enabled is not None:
            workspace.white_label_enabled = white_label_enabled

        self.db.commit()
        self.db.refresh(workspace)
        return workspace

    def delete(self, workspace_id: str) -> Workspace:
        workspace = self.get_by_id(workspace_id)
        if not workspace:
            raise WorkspaceNotFoundError()

        self.db.delete(workspace)
        self.db.commit()

        logger.info(f"Workspace deleted: {workspace_id}")
        return workspace

    def verify_ownership(self, workspace_id: str, user_id: str) -> bool:
        return self.db.query(Workspace.id).filter(
            Workspace.id == workspace_id,
            Workspace.owner_id == user_id
        ).first() is not None
