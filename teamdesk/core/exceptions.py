"""
Custom Exceptions

Centralized exception definitions. Services raise these directly and
FastAPI converts them to HTTP responses, so route handlers never have
to inspect error messages to pick a status code.
"""
from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Raised when there is no valid session."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(HTTPException):
    """Raised when the user's role does not allow an action."""

    def __init__(self, detail: str = "You don't have permission to perform this action"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class UserNotFoundError(HTTPException):
    """Raised when the session's user (or the user a token names) no longer exists."""

    def __init__(self, detail: str = "User not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class UserAlreadyExistsError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )


class InvalidInputError(HTTPException):
    """Raised when input validation fails inside a service."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


# ---------------------------------------------------------------------------
# Password reset and email verification
# ---------------------------------------------------------------------------

class InvalidTokenError(HTTPException):
    """Raised for unknown or expired reset and verification tokens."""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class EmailAlreadyVerifiedError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already verified"
        )


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------

class OnboardingAlreadyCompletedError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Onboarding already completed"
        )


class InvalidWorkspaceError(HTTPException):
    def __init__(self, detail: str = "Invalid workspace"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


# ---------------------------------------------------------------------------
# Organizations and workspaces
# ---------------------------------------------------------------------------

class OrganizationNotFoundError(HTTPException):
    def __init__(self, detail: str = "Organization not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class DuplicateOrganizationError(HTTPException):
    def __init__(self, organization_name: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f'An organization with the name "{organization_name}" already exists. '
                "Please choose a different name."
            )
        )


class OwnerCannotLeaveError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization owners cannot leave their own organization"
        )


class NoOrganizationError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Create an organization before inviting team members"
        )


class WorkspaceNotFoundError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace not found"
        )


class DuplicateWorkspaceError(HTTPException):
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f'You already have a workspace named "{name}". '
                "Please choose a different name to avoid confusion."
            )
        )


# ---------------------------------------------------------------------------
# Team and invitations
# ---------------------------------------------------------------------------

class TeamMemberNotFoundError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team member not found"
        )


class InvitationNotFoundError(HTTPException):
    def __init__(self, detail: str = "Invitation not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class InvitationPermissionError(HTTPException):
    """Raised when a user tries to cancel an invitation they did not issue."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized to delete this invitation"
        )


class InvalidInvitationError(HTTPException):
    def __init__(self, detail: str = "Invalid or expired invitation"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class InvitationEmailMismatchError(HTTPException):
    def __init__(self, invitation_email: str, user_email: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"This invitation is for {invitation_email}. "
                f"You are currently logged in as {user_email}. "
                "Please log in with the correct account to accept this invitation."
            )
        )


class MemberAlreadyExistsError(HTTPException):
    def __init__(self, detail: str = "User is already a team member"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class InvitationAlreadySentError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="An invitation has already been sent to this email"
        )


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

class ServiceError(HTTPException):
    """
    Raised by routes when the database fails underneath a service call.

    The detail is the route's own user-facing message, never the
    driver's error text.
    """

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )


class RateLimitExceeded(HTTPException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(retry_after)}
        )
