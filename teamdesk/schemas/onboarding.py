"""
Onboarding Schemas

Validation for the five-step signup wizard.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from teamdesk.schemas.team import InviteRequest

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\s-]*[a-zA-Z0-9]$")
NAME_SEPARATOR_RUNS = re.compile(r"(  |--|\s-|-\s)")


def validate_display_name(value: str, label: str) -> str:
    """
    Shared rules for workspace and organization names.

    2 to 50 characters, letters, numbers, spaces and hyphens, starting
    and ending with a letter or number, no doubled separators, not only
    digits.
    """
    value = value.strip()
    if len(value) < 2:
        raise ValueError(f"{label} must be at least 2 characters")
    if len(value) > 50:
        raise ValueError(f"{label} must be less than 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(
            f"{label} must start and end with a letter or number, "
            "and can only contain letters, numbers, spaces, and hyphens"
        )
    if NAME_SEPARATOR_RUNS.search(value):
        raise ValueError(f"{label} cannot have consecutive spaces or hyphens")
    if value.isdigit():
        raise ValueError(f"{label} cannot be only numbers")
    return value


def _needs_detail(choice: Optional[str], detail: Optional[str]) -> bool:
    return choice == "Other" and not (detail or "").strip()


class ProgressUpdate(BaseModel):
    """Save one step. Without data only the current step is recorded."""
    step: int = Field(..., ge=1, le=5)
    data: Optional[Dict[str, Any]] = None


class Step2Request(BaseModel):
    """Organization setup plus the step 2 answers."""
    organization_name: str
    professional_role: Optional[str] = None
    other_professional_role: Optional[str] = None
    company_size: Optional[str] = None
    industry: Optional[str] = None
    other_industry: Optional[str] = None

    @field_validator("organization_name")
    @classmethod
    def organization_name_format(cls, v: str) -> str:
        return validate_display_name(v, "Organization name")


class OnboardingSubmission(BaseModel):
    """Every answer, submitted when the wizard finishes."""
    # Step 1
    use_cases: List[str] = Field(..., min_length=1)
    other_use_case: Optional[str] = None

    # Step 2
    workspace_name: str
    professional_role: str = Field(..., min_length=1)
    other_professional_role: Optional[str] = None
    company_size: str = Field(..., min_length=1)
    industry: str = Field(..., min_length=1)
    other_industry: Optional[str] = None

    # Step 3
    cms_integration: str = Field(..., min_length=1)
    other_cms: Optional[str] = None

    # Step 4
    team_members: List[InviteRequest] = []

    # Step 5
    discovery_source: str = Field(..., min_length=1)
    other_discovery_source: Optional[str] = None
    previous_attempts: Optional[str] = None

    workspace_id: Optional[str] = None

    @field_validator("workspace_name")
    @classmethod
    def workspace_name_format(cls, v: str) -> str:
        return validate_display_name(v, "Workspace name")

    @model_validator(mode="after")
    def other_answers_described(self) -> "OnboardingSubmission":
        if "other" in self.use_cases and not (self.other_use_case or "").strip():
            raise ValueError("Please describe your use case")
        if _needs_detail(self.professional_role, self.other_professional_role):
            raise ValueError("Please specify your professional role")
        if _needs_detail(self.industry, self.other_industry):
            raise ValueError("Please specify your industry")
        if _needs_detail(self.cms_integration, self.other_cms):
            raise ValueError("Please provide details about your platform")
        if _needs_detail(self.discovery_source, self.other_discovery_source):
            raise ValueError("Please specify how you heard about us")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "use_cases": ["blog"],
                "workspace_name": "Acme Marketing",
                "professional_role": "Marketing Manager",
                "company_size": "11-50",
                "industry": "Software",
                "cms_integration": "WordPress",
                "team_members": [{"email": "colleague@example.com", "role": "member"}],
                "discovery_source": "Search"
            }
        }


class OnboardingStatusResponse(BaseModel):
    onboarding_completed: bool
    onboarding_completed_at: Optional[datetime] = None
    workspace: Optional[Dict[str, Any]] = None


class OnboardingProgressResponse(BaseModel):
    """
    Progress for the wizard.

    Completed users only get completed, onboarding_completed and
    redirect_to; everyone else gets the saved answers both under data
    (with the workspace merged in) and at the top level.
    """
    completed: bool
    onboarding_completed: bool
    redirect_to: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    onboarding_data: Optional[Dict[str, Any]] = None
    workspace_id: Optional[str] = None
    workspace_name: Optional[str] = None


class SaveProgressResponse(BaseModel):
    success: bool
    message: str
    saved_fields: List[str]


class CompleteOnboardingResponse(BaseModel):
    success: bool = True
    workspace_id: str
    message: str = "Onboarding completed successfully"
