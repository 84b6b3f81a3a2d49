"""
Onboarding Service

The signup wizard has five steps:

1. use cases
2. professional and company info
3. CMS integration
4. team members (stored as invitations, not on the user)
5. discovery

Answers are saved on the user row as the user moves through the
wizard and written in full when onboarding completes.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from teamdesk.models.user import User
from teamdesk.schemas.onboarding import OnboardingSubmission
from teamdesk.core.exceptions import OnboardingAlreadyCompletedError, UserNotFoundError
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

FINAL_STEP = 5

# User columns written by each step, keyed by the request field name
STEP_FIELDS = {
    1: ("use_cases", "other_use_case"),
    2: (
        "professional_role",
        "other_professional_role",
        "company_size",
        "industry",
        "other_industry",
    ),
    3: ("cms_integration", "other_cms"),
    4: (),
    5: ("discovery_source", "other_discovery_source", "previous_attempts"),
}

ONBOARDING_PATH = "/onboarding"

PUBLIC_PATHS = (
    "/login",
    "/signup",
    "/forgot-password",
    "/reset-password",
    "/auth",
    "/api",
)

PROTECTED_PATHS = (
    "/dashboard",
    "/projects",
    "/settings",
    "/team",
    "/billing",
)


class OnboardingService:
    def __init__(self, db: Session):
        self.db = db

    def get_progress(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the stored onboarding state, or None if the user is missing.

        onboarding_data has a value for every answer so the wizard can
        prefill its form; team_members is always empty because invited
        members are loaded from the team endpoints.
        """
        user = self._get_user(user_id)
        if not user:
            return None

        onboarding_data = {
            "current_step": user.onboarding_current_step or 1,
            "use_cases": user.use_cases or [],
            "other_use_case": user.other_use_case or "",
            "professional_role": user.professional_role or "",
            "other_professional_role": user.other_professional_role or "",
            "company_size": user.company_size or "",
            "industry": user.industry or "",
            "other_industry": user.other_industry or "",
            "cms_integration": user.cms_integration or "",
            "other_cms": user.other_cms or "",
            "discovery_source": user.discovery_source or "",
            "other_discovery_source": user.other_discovery_source or "",
            "previous_attempts": user.previous_attempts or "",
            "team_members": [],
        }

        return {
            "onboarding_completed": bool(user.onboarding_completed),
            "onboarding_completed_at": user.onboarding_completed_at,
            "onboarding_data": onboarding_data,
        }

    def save_progress(
        self,
        user_id: str,
        step: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Save the answers for one step.

        Only the fields belonging to the step are written; anything else
        in data is ignored. Without data only the current step moves,
        which is how the wizard records navigation.
        """
        user = self._get_pending_user(user_id)

        saved_fields = []
        if data:
            for field in STEP_FIELDS.get(step, ()):
                if field in data:
                    setattr(user, field, data[field])
                    saved_fields.append(field)
        else:
            user.onboarding_current_step = step
            saved_fields.append("onboarding_current_step")

        user.updated_at = datetime.utcnow()
        saved_fields.append("updated_at")
        self.db.commit()

        return {
            "success": True,
            "message": f"Step {step} progress saved",
            "saved_fields": saved_fields,
        }

    def complete_onboarding(self, user_id: str, submission: OnboardingSubmission) -> User:
        user = self._get_pending_user(user_id)

        user.use_cases = submission.use_cases
        user.other_use_case = submission.other_use_case or None
        user.professional_role = submission.professional_role
        user.other_professional_role = submission.other_professional_role or None
        user.company_size = submission.company_size
        user.industry = submission.industry
        user.other_industry = submission.other_industry or None
        user.cms_integration = submission.cms_integration
        user.other_cms = submission.other_cms or None
        user.discovery_source = submission.discovery_source
        user.other_discovery_source = submission.other_discovery_source or None
        user.previous_attempts = submission.previous_attempts or None

        user.onboarding_current_step = FINAL_STEP
        user.onboarding_completed = True
        user.onboarding_completed_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Onboarding completed for user {user_id}", extra={"user_id": user_id})
        return user

    def is_completed(self, user_id: str) -> bool:
        user = self._get_user(user_id)
        return bool(user and user.onboarding_completed)

    @staticmethod
    def requires_onboarding(path: str) -> bool:
        """Whether visiting path requires a completed onboarding."""
        if any(path.startswith(p) for p in PUBLIC_PATHS):
            return False
        if path == ONBOARDING_PATH:
            return False
        return any(path.startswith(p) for p in PROTECTED_PATHS)

    def _get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def _get_pending_user(self, user_id: str) -> User:
        user = self._get_user(user_id)
        if not user:
            raise UserNotFoundError()
        if user.onboarding_completed:
            raise OnboardingAlreadyCompletedError()
        return user
