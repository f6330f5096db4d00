"""
Tavara.care Coordination Service - WhatsApp Client

Sends text messages through the WhatsApp Business Cloud (Graph) API.
"""

from typing import Dict, Optional

import httpx

from tavara.core.errors import IntegrationError
from tavara.core.logging import logger, log_integration_call
from tavara.core.settings import get_settings

settings = get_settings()


class WhatsAppClient:
    """Thin wrapper over the Graph API messages endpoint."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http_client = http_client or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        logger.info("WhatsAppClient initialized")

    @property
    def configured(self) -> bool:
        return bool(settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID)

    def send_text(self, to: str, body: str) -> Dict:
        """
        Send a plain text message.

        Args:
            to: Recipient in international format (+1868...)
            body: Message text

        Returns:
            Dict: Graph API response

        Raises:
            IntegrationError: Not configured or the API rejected the message
        """
        if not self.configured:
            raise IntegrationError("whatsapp", "WhatsApp credentials are not configured")

        url = (
            f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_API_VERSION}/"
            f"{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        )
        payload = {
            "messaging_product": "whatsapp",
            "to": to.lstrip("+"),
            "type": "text",
            "text": {"body": body}
        }

        try:
            response = self.http_client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}"}
            )
        except httpx.HTTPError as e:
            log_integration_call("whatsapp", "send_text", False, error=str(e))
            raise IntegrationError("whatsapp", str(e)) from e

        if response.status_code >= 400:
            log_integration_call("whatsapp", "send_text", False, status_code=response.status_code)
            raise IntegrationError("whatsapp", response.text, response.status_code)

        log_integration_call("whatsapp", "send_text", True)
        return response.json()
