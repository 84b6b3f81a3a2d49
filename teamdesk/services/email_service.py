"""
Email Service

Transactional notifications, delivered as Bento events so the email
templates live in Bento. Every method returns True when the event was
accepted and False otherwise; callers run them as background tasks and
never depend on the result.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from teamdesk.config import get_settings
from teamdesk.email.bento_client import BentoClient
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

USER_CREATED = "$user_created"
TEAM_MEMBER_INVITED = "$team_member_invited_V2"
TEAM_INVITATION_ACCEPTED = "$team_invitation_accepted_V2"
ONBOARDING_COMPLETED = "$onboarding_completed"
WORKSPACE_MEMBER_REMOVED = "$workspace_member_removed_V2"
TEAM_MEMBER_LEFT = "$team_member_left_V2"
PASSWORD_RESET_REQUESTED = "$password_reset_requested_V2"
PASSWORD_RESET_COMPLETED = "$password_reset_completed_V2"
EMAIL_VERIFICATION = "$email_verification"


class EmailService:
    def __init__(self, client: Optional[BentoClient]):
        self.client = client

    async def trigger_event(
        self,
        email: str,
        event_type: str,
        fields: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.client:
            logger.warning(f"Email not configured, skipping {event_type} for {email}")
            return False

        result = await self.client.trigger_event(email, event_type, fields)
        if not result.success:
            logger.error(f"Failed to send {event_type} to {email}: {result.error}")
        return result.success

    async def send_welcome_email(self, email: str, user_id: str, created_at: datetime) -> bool:
        return await self.trigger_event(email, USER_CREATED, {
            "user_id": user_id,
            "created_at": created_at.isoformat(),
            "login_url": f"{settings.APP_BASE_URL}/login",
        })

    async def send_team_invitation(
        self,
        email: str,
        inviter_name: str,
        role: str,
        invite_url: str,
        expires_at: datetime,
        organization_name: Optional[str] = None,
    ) -> bool:
        return await self.trigger_event(email, TEAM_MEMBER_INVITED, {
            "inviter_name": inviter_name,
            "organization_name": organization_name or "their team",
            "role": role,
            "invite_url": invite_url,
            "expires_at": expires_at.isoformat(),
        })

    async def send_invitation_accepted_notification(
        self,
        inviter_email: str,
        member_email: str,
        member_name: Optional[str] = None,
    ) -> bool:
        return await self.trigger_event(inviter_email, TEAM_INVITATION_ACCEPTED, {
            "member_email": member_email,
            "member_name": member_name or member_email,
            "team_url": f"{settings.APP_BASE_URL}/dashboard/settings?tab=team",
        })

    async def track_onboarding_complete(
        self,
        email: str,
        user_id: str,
        workspace_id: str,
        completed_at: datetime,
    ) -> bool:
        return await self.trigger_event(email, ONBOARDING_COMPLETED, {
            "user_id": user_id,
            "workspace_id": workspace_id,
            "completed_at": completed_at.isoformat(),
        })

    async def track_member_removed(
        self,
        email: str,
        organization_name: Optional[str] = None,
    ) -> bool:
        return await self.trigger_event(email, WORKSPACE_MEMBER_REMOVED, {
            "organization_name": organization_name or "",
            "removed_at": datetime.utcnow().isoformat(),
        })

    async def notify_member_left(
        self,
        owner_email: str,
        member_email: str,
        organization_name: Optional[str] = None,
    ) -> bool:
        return await self.trigger_event(owner_email, TEAM_MEMBER_LEFT, {
            "member_email": member_email,
            "organization_name": organization_name or "",
            "left_at": datetime.utcnow().isoformat(),
        })

    async def send_password_reset_email(self, email: str, reset_url: str, expires_at: datetime) -> bool:
        return await self.trigger_event(email, PASSWORD_RESET_REQUESTED, {
            "reset_url": reset_url,
            "expires_at": expires_at.isoformat(),
        })

    async def send_password_reset_completed_email(self, email: str) -> bool:
        return await self.trigger_event(email, PASSWORD_RESET_COMPLETED, {
            "reset_at": datetime.utcnow().isoformat(),
            "login_url": f"{settings.APP_BASE_URL}/login",
        })

    async def send_email_verification(self, email: str, verification_url: str) -> bool:
        return await self.trigger_event(email, EMAIL_VERIFICATION, {
            "verification_url": verification_url,
            "expires_in": f"{settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours",
        })
