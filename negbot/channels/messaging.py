"""
Vendor messaging channel.

WHAT: Open a conversation with a vendor and exchange messages in it
WHY: The vendor side lives behind an external conversation API
HOW: Protocol for the session; httpx implementation for the HTTP API
"""

import json
from typing import Protocol

import httpx

from ..core.config import settings as default_settings
from ..utils.exceptions import ChannelError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MessagingChannel(Protocol):
    """External conversation transport."""

    async def open_conversation(self, vendor_external_id: int | str, title: str = "Price Negotiation") -> str:
        """Create a conversation with a vendor and return its handle."""
        ...

    async def send_and_await_reply(self, conversation_id: str, body: str) -> str:
        """Deliver a message and return the vendor's reply text."""
        ...


class HttpMessagingChannel:
    """
    Conversation API client.

    Endpoints:
        POST /api/conversations/?team_id=...   JSON {vendor_id, title} -> {id}
        POST /api/messages/{conversation_id}   form {content} -> {content}

    The reply is generated synchronously by the server, so sends use a long
    read timeout.
    """

    def __init__(self, settings=None, client: httpx.AsyncClient | None = None):
        self.settings = settings or default_settings
        self.base_url = self.settings.MESSAGING_BASE_URL
        self.team_id = self.settings.MESSAGING_TEAM_ID
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(5.0, read=float(self.settings.MESSAGING_TIMEOUT)),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
        logger.info(f"Messaging channel initialized (base: {self.base_url})")

    async def _post(self, url: str, **kwargs) -> dict:
        try:
            response = await self.client.post(url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ChannelError(
                f"{e.response.status_code} {e.response.reason_phrase} - {e.response.text}",
                status_code=e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise ChannelError(f"Request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise ChannelError(f"Request to {url} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise ChannelError(f"Invalid JSON from {url}: {e}") from e

    async def open_conversation(self, vendor_external_id: int | str, title: str = "Price Negotiation") -> str:
        """
        Create a conversation.

        Raises:
            ChannelError: Request failed or the response carries no id
        """
        params = {"team_id": self.team_id} if self.team_id else None
        data = await self._post(
            f"{self.base_url}/api/conversations/",
            params=params,
            json={"vendor_id": vendor_external_id, "title": title}
        )
        if not isinstance(data, dict) or data.get("id") is None:
            raise ChannelError(f"Conversation response has no id: {data}")

        conversation_id = str(data["id"])
        logger.info(f"Opened conversation {conversation_id} with vendor {vendor_external_id}")
        return conversation_id

    async def send_and_await_reply(self, conversation_id: str, body: str) -> str:
        """
        Send one message and wait for the vendor's reply.

        Raises:
            ChannelError: Request failed or the response carries no content
        """
        data = await self._post(
            f"{self.base_url}/api/messages/{conversation_id}",
            data={"content": body}
        )
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ChannelError(f"Reply in conversation {conversation_id} has no content")

        logger.debug(f"Received reply in conversation {conversation_id} ({len(data['content'])} chars)")
        return data["content"]

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
