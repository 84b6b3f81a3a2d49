"""
Service Layer

Business rules live here. Each service wraps a database session and
raises the typed errors from teamdesk.core.exceptions.
"""
from teamdesk.services.user_service import UserService
from teamdesk.services.onboarding_service import OnboardingService
from teamdesk.services.organization_service import OrganizationService
from teamdesk.services.workspace_service import WorkspaceService
from teamdesk.services.team_service import TeamService
from teamdesk.services.email_service import EmailService

__all__ = [
    "UserService",
    "OnboardingService",
    "OrganizationService",
    "WorkspaceService",
    "TeamService",
    "EmailService",
]
