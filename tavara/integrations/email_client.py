"""
Tavara.care Coordination Service - Email Client

Transactional email through Resend.
"""

from typing import Dict, List, Optional, Union

import resend

from tavara.core.errors import IntegrationError
from tavara.core.logging import logger, log_integration_call
from tavara.core.settings import get_settings

settings = get_settings()


class EmailClient:

    def __init__(self):
        logger.info("EmailClient initialized")

    def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        reply_to: Optional[str] = None
    ) -> Dict:
        """
        Send one email.

        Raises:
            IntegrationError: RESEND_API_KEY missing or the send failed
        """
        if not settings.RESEND_API_KEY:
            raise IntegrationError("resend", "RESEND_API_KEY is not configured")

        resend.api_key = settings.RESEND_API_KEY
        email_data = {
            "from": settings.EMAIL_FROM,
            "to": [to] if isinstance(to, str) else to,
            "subject": subject,
            "html": html
        }
        if reply_to:
            email_data["reply_to"] = reply_to

        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            log_integration_call("resend", "send", False, error=str(e))
            raise IntegrationError("resend", str(e)) from e

        log_integration_call("resend", "send", True)
        return response
