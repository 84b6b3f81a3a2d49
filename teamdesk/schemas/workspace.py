"""
Workspace Schemas

Request/response models for workspace operations.
"""
from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

from teamdesk.schemas.onboarding import validate_display_name


class WorkspaceCreate(BaseModel):
    """Schema for creating a workspace."""
    name: str

    @field_validator("name")
    @classmethod
    def name_format(cls, v: str) -> str:
        return validate_display_name(v, "Workspace name")


class WorkspaceUpdate(BaseModel):
    """Rename a workspace or toggle white labelling. Omitted fields are kept."""
    name: Optional[str] = None
    white_label_enabled: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def name_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_display_name(v, "Workspace name")


class WorkspaceNameCheck(BaseModel):
    name: str
    current_workspace_id: Optional[str] = None


class WorkspaceResponse(BaseModel):
    """Workspace response schema."""
    id: str
    name: str
    owner_id: str
    organization_id: Optional[str] = None
    white_label_enabled: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CurrentWorkspaceResponse(BaseModel):
    """The workspace the user is working in and their role there."""
    workspace: Optional[WorkspaceResponse] = None
    role: Optional[str] = None
