"""
Tavara.care Coordination Service - Notification Service

Outgoing WhatsApp messages and emails, shift notification logging
and admin nudges. Delivery failures are logged and reported to the
caller, never raised.
"""

import html
from datetime import datetime
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import (
    NUDGE_STEP_MESSAGES,
    DEFAULT_NUDGE_MESSAGE,
    NUDGE_TEMPLATES,
    NUDGE_CHANNELS
)
from tavara.core.errors import IntegrationError
from tavara.core.logging import logger
from tavara.db.models import (
    Profile,
    ShiftNotification,
    WhatsAppMessageLog,
    AdminCommunication
)
from tavara.integrations.email_client import EmailClient
from tavara.integrations.whatsapp_client import WhatsAppClient
from tavara.monitoring.metrics import metrics_collector
from tavara.utils.helpers import display_profile_name


def nudge_message(role: Optional[str], message_type: str, current_step: Optional[int] = None) -> str:
    """Template for a nudge; {name} is left for the caller to fill."""
    if current_step is not None or message_type == "welcome":
        step = 1 if message_type == "welcome" else current_step
        return NUDGE_STEP_MESSAGES.get(role or "", {}).get(step, DEFAULT_NUDGE_MESSAGE)
    return NUDGE_TEMPLATES.get(message_type, NUDGE_TEMPLATES["general"])


class NotificationService:
    """WhatsApp and email delivery with persistent logs."""

    def __init__(self, whatsapp_client: WhatsAppClient = None, email_client: EmailClient = None):
        self.whatsapp_client = whatsapp_client or WhatsAppClient()
        self.email_client = email_client or EmailClient()
        logger.info("NotificationService initialized")

    def send_whatsapp(
        self,
        db: Session,
        phone_number: str,
        message: str,
        template_name: str,
        user_id: Optional[str] = None
    ) -> bool:
        """
        Send a WhatsApp message and log it in whatsapp_message_log.

        Returns:
            bool: True if the Graph API accepted the message
        """
        entry = WhatsAppMessageLog(
            phone_number=phone_number,
            user_id=user_id,
            direction="outgoing",
            message_type="template",
            content=message,
            template_name=template_name
        )
        db.add(entry)

        try:
            self.whatsapp_client.send_text(phone_number, message)
            delivered = True
        except IntegrationError as e:
            delivered = False
            logger.warning(f"WhatsApp delivery failed: {e}", extra={"template_name": template_name})

        entry.processed = delivered
        entry.processed_at = datetime.utcnow() if delivered else None
        db.commit()

        metrics_collector.record_notification("whatsapp", delivered)
        return delivered

    def log_incoming_whatsapp(self, db: Session, phone_number: str, content: str) -> WhatsAppMessageLog:
        entry = WhatsAppMessageLog(
            phone_number=phone_number,
            direction="incoming",
            message_type="text",
            content=content,
            processed=False
        )
        db.add(entry)
        db.commit()
        return entry

    def notify_profile(
        self,
        db: Session,
        profile: Profile,
        message: str,
        notification_type: str,
        shift_id: Optional[str] = None,
        coverage_request_id: Optional[str] = None
    ) -> ShiftNotification:
        """
        Message a profile about a shift and record it in shift_notifications.

        delivery_status is sent, failed, or no_phone when the profile has
        no phone number.
        """
        if profile.phone_number:
            delivered = self.send_whatsapp(db, profile.phone_number, message, notification_type, profile.id)
            status = "sent" if delivered else "failed"
        else:
            status = "no_phone"

        notification = ShiftNotification(
            coverage_request_id=coverage_request_id,
            shift_id=shift_id,
            notification_type=notification_type,
            sent_to=profile.id,
            message_content=message,
            delivery_status=status
        )
        db.add(notification)
        db.commit()
        return notification

    def send_email(self, to: str, subject: str, body_html: str) -> bool:
        try:
            self.email_client.send(to, subject, body_html)
            metrics_collector.record_notification("email", True)
            return True
        except IntegrationError as e:
            metrics_collector.record_notification("email", False)
            logger.warning(f"Email delivery failed: {e}", extra={"subject": subject})
            return False

    def _nudge_email(self, profile: Profile, name: str, message: str, message_type: str,
                     current_step: Optional[int]) -> bool:
        subject = "Welcome to Tavara!" if message_type == "welcome" else "Next Step: Continue Your Tavara Journey"
        step_line = f"<p><strong>Current Step:</strong> {current_step}</p>" if current_step else ""
        body = (
            f"<h2>Hello {html.escape(name)}!</h2>"
            f"<p>{html.escape(message)}</p>"
            f"{step_line}"
            f"<p><a href=\"https://tavara.care/dashboard/{profile.role}\">Continue Your Journey</a></p>"
        )
        return self.send_email(profile.email, subject, body)

    def send_nudge(
        self,
        db: Session,
        admin_id: Optional[str],
        user_ids: List[str],
        channel: str = "email",
        message_type: str = "reminder",
        custom_message: Optional[str] = None,
        current_step: Optional[int] = None
    ) -> Dict:
        """
        Nudge users by email, WhatsApp or both.

        Args:
            db: Database session
            admin_id: Admin sending the nudge
            user_ids: Target profiles
            channel: email, whatsapp or both
            message_type: welcome, reminder, follow_up or general
            custom_message: Overrides the template; may contain {name}
            current_step: Journey step the email refers to

        Returns:
            Dict: sent count and per-recipient results
        """
        if channel not in NUDGE_CHANNELS:
            raise ValueError(f"Unknown nudge channel: {channel}")
        if not user_ids:
            raise ValueError("At least one target user is required")

        channels = ["email", "whatsapp"] if channel == "both" else [channel]
        profiles = db.query(Profile).filter(Profile.id.in_(user_ids)).all()

        results = []
        for profile in profiles:
            name = display_profile_name(profile) or "there"
            template = custom_message or nudge_message(profile.role, message_type, current_step)
            message = template.replace("{name}", name)

            for target in channels:
                if target == "email":
                    delivered = bool(profile.email) and self._nudge_email(
                        profile, name, message, message_type, current_step
                    )
                else:
                    delivered = bool(profile.phone_number) and self.send_whatsapp(
                        db, profile.phone_number, message, f"nudge_{message_type}", profile.id
                    )

                db.add(AdminCommunication(
                    admin_id=admin_id,
                    target_user_id=profile.id,
                    message_type=message_type,
                    channel=target,
                    custom_message=message,
                    delivery_status="sent" if delivered else "failed"
                ))
                results.append({"user_id": profile.id, "channel": target, "status": "sent" if delivered else "failed"})

        db.commit()
        sent = sum(1 for r in results if r["status"] == "sent")
        logger.info(f"Nudges sent: {sent}/{len(results)}", extra={"admin_id": admin_id, "channel": channel})
        return {"sent": sent, "failed": len(results) - sent, "results": results}

    def list_communications(self, db: Session, user_id: Optional[str] = None, limit: int = 100) -> List[AdminCommunication]:
        query = db.query(AdminCommunication)
        if user_id:
            query = query.filter(AdminCommunication.target_user_id == user_id)
        return query.order_by(AdminCommunication.sent_at.desc()).limit(limit).all()
