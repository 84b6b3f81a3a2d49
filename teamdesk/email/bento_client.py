"""
Bento API Client

Thin async client for Bento's batch email and event endpoints.
Failures are reported in the returned BentoResponse and logged; they
are never raised, because a failed notification must not fail the
request that triggered it.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import httpx

from teamdesk.config import Settings, get_settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10.0


@dataclass
class BentoResponse:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class BentoClient:
    """
    Client for https://app.bentonow.com/api/v1.

    Requests authenticate with HTTP Basic auth (publishable key as the
    username, secret key as the password) and are scoped by site_uuid.
    """

    def __init__(
        self,
        publishable_key: str,
        secret_key: str,
        site_uuid: str,
        from_email: str,
        base_url: str = "https://app.bentonow.com/api/v1",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not all([publishable_key, secret_key, site_uuid, from_email]):
            raise ValueError(
                "Bento publishable key, secret key, site UUID and from email are required"
            )

        self.publishable_key = publishable_key
        self.secret_key = secret_key
        self.site_uuid = site_uuid
        self.from_email = from_email
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "BentoClient":
        return cls(
            publishable_key=settings.BENTO_PUBLISHABLE_KEY,
            secret_key=settings.BENTO_SECRET_KEY,
            site_uuid=settings.BENTO_SITE_UUID,
            from_email=settings.BENTO_FROM_EMAIL,
            base_url=settings.BENTO_API_URL,
        )

    async def send_transactional_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        from_email: Optional[str] = None,
        transactional: bool = True,
        fields: Optional[Dict[str, Any]] = None,
    ) -> BentoResponse:
        payload = {
            "emails": [
                {
                    "to": to,
                    "from": from_email or self.from_email,
                    "subject": subject,
                    "html_body": html_body,
                    "transactional": transactional,
                    "personalizations": fields or {},
                }
            ]
        }
        return await self._post("/batch/emails", payload)

    async def trigger_event(
        self,
        email: str,
        event_type: str,
        fields: Optional[Dict[str, Any]] = None,
    ) -> BentoResponse:
        payload = {
            "events": [
                {
                    "email": email,
                    "type": event_type,
                    "fields": fields or {},
                }
            ]
        }
        return await self._post("/batch/events", payload)

    async def _post(self, path: str, payload: Dict[str, Any]) -> BentoResponse:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.publishable_key, self.secret_key),
                timeout=REQUEST_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    path,
                    params={"site_uuid": self.site_uuid},
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Bento request to {path} failed: {e}")
            return BentoResponse(success=False, error=str(e))

        if response.is_error:
            logger.error(f"Bento API error on {path}: HTTP {response.status_code} {response.text}")
            return BentoResponse(
                success=False,
                error=f"HTTP {response.status_code}: {response.text}"
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        return BentoResponse(success=True, data=data)


_bento_client: Optional[BentoClient] = None


def get_bento_client() -> Optional[BentoClient]:
    """
    Shared client, or None when Bento is not configured.
    """
    global _bento_client

    settings = get_settings()
    if not settings.bento_configured:
        return None

    if _bento_client is None:
        _bento_client = BentoClient.from_settings(settings)
    return _bento_client
