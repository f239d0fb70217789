"""
Negotiation-complete notifications.

WHAT: Tell the principal that every vendor of a group submitted final offers
WHY: Group completion happens inside a tool call, minutes after the launch
HOW: Notifier protocol; logging default and a Resend e-mail implementation
"""

from typing import Protocol

import httpx

from ..core.config import settings as default_settings
from ..models.negotiation import GroupRecord
from ..utils.exceptions import NegotiationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class CompletionNotifier(Protocol):
    """Receives groups that just transitioned to finished."""

    async def notify(self, group: GroupRecord) -> None:
        ...


class LoggingNotifier:
    """Log the completion only."""

    async def notify(self, group: GroupRecord) -> None:
        logger.info(f"Negotiation group {group.id} ({group.name}) completed: all vendors submitted final offers")


class NotificationError(NegotiationError):
    """Raised when the e-mail provider rejects a notification."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message=message, code="NOTIFICATION_FAILED", details={"status_code": status_code})


class ResendNotifier:
    """
    Send a completion e-mail through the Resend HTTP API.

    WHAT: One e-mail per finished group, linking to the dashboard
    WHY: The principal reviews and accepts offers outside this service
    HOW: httpx POST with bearer auth; skipped when unconfigured
    """

    def __init__(self, settings=None, client: httpx.AsyncClient | None = None):
        self.settings = settings or default_settings
        self.api_key = self.settings.RESEND_API_KEY
        self.from_email = self.settings.RESEND_FROM_EMAIL
        self.recipient = self.settings.NOTIFY_EMAIL
        self.dashboard_url = self.settings.DASHBOARD_URL
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0))

    def _render(self, group: GroupRecord) -> dict:
        url = f"{self.dashboard_url}/negotiation/{group.id}"
        text = (
            f"Negotiation Complete\n\n"
            f"Your negotiation \"{group.name}\" has been completed.\n\n"
            f"All vendors have submitted their final offers. You can now review and compare the offers.\n\n"
            f"View the negotiation details here:\n{url}\n"
        )
        html = (
            f"<h1>Negotiation Complete</h1>"
            f"<p>Your negotiation <strong>{group.name}</strong> has been completed.</p>"
            f"<p>All vendors have submitted their final offers. You can now review and compare the offers.</p>"
            f"<p><a href=\"{url}\">View Negotiation Details</a></p>"
        )
        return {
            "from": self.from_email,
            "to": [self.recipient],
            "subject": f"Negotiation Complete: {group.name}",
            "html": html,
            "text": text,
        }

    async def notify(self, group: GroupRecord) -> None:
        """
        Send the completion e-mail.

        Raises:
            NotificationError: Resend returned an error or was unreachable
        """
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set, skipping completion email")
            return
        if not self.recipient:
            logger.warning("NOTIFY_EMAIL not set, skipping completion email")
            return

        try:
            response = await self.client.post(
                RESEND_API_URL,
                json=self._render(group),
                headers={"Authorization": f"Bearer {self.api_key}"}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"Resend rejected completion email: HTTP {e.response.status_code} {e.response.text}",
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Resend unreachable: {e}") from e

        logger.info(f"Sent completion email to {self.recipient} for negotiation group {group.id}")

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
