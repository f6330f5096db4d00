"""
Tavara.care Coordination Service - Lead Service

Contact form submissions, feedback and leads captured by the registration
assistant. Submissions are stored first and then emailed to the admin inbox.
"""

import html
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from tavara.config import FEEDBACK_TYPES
from tavara.core.errors import IntegrationError, NotFoundError
from tavara.core.logging import logger
from tavara.core.security import sanitize_input
from tavara.core.settings import get_settings
from tavara.db.models import Lead, Feedback, ChatbotConversation
from tavara.integrations.email_client import EmailClient
from tavara.monitoring.metrics import metrics_collector

settings = get_settings()


def _paragraphs(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


class LeadService:
    """Lead and feedback intake."""

    def __init__(self, email_client: EmailClient = None):
        self.email_client = email_client or EmailClient()
        logger.info("LeadService initialized")

    def _notify_admin(self, subject: str, body: str, reply_to: Optional[str] = None) -> bool:
        try:
            self.email_client.send(settings.ADMIN_EMAIL, subject, body, reply_to=reply_to)
            metrics_collector.record_notification("email", True)
            return True
        except IntegrationError as e:
            metrics_collector.record_notification("email", False)
            logger.warning(f"Admin email not sent: {e}", extra={"subject": subject})
            return False

    def submit_contact_form(
        self,
        db: Session,
        name: str,
        email: str,
        message: str,
        category: Optional[str] = None,
        phone: Optional[str] = None,
        utm_source: Optional[str] = None,
        utm_campaign: Optional[str] = None
    ) -> Dict:
        """
        Store a contact form lead and email it to the admin.

        Returns:
            Dict: lead_id and email_sent
        """
        name = sanitize_input(name or "", max_length=255)
        email = sanitize_input(email or "", max_length=255)
        message = sanitize_input(message or "")
        if not name or not email or not message:
            raise ValueError("Missing required fields: name, email, message")

        lead = Lead(
            source="contact_form",
            name=name,
            email=email,
            phone=phone,
            message=message,
            utm_source=utm_source,
            utm_campaign=utm_campaign
        )
        db.add(lead)
        db.commit()
        metrics_collector.record_lead("contact_form")

        body = (
            "<h2>New Contact Form Submission</h2>"
            f"<p><strong>Name:</strong> {html.escape(name)}</p>"
            f"<p><strong>Email:</strong> {html.escape(email)}</p>"
            f"<p><strong>Category:</strong> {html.escape(category or 'Not specified')}</p>"
            f"<p><strong>Message:</strong></p><div>{_paragraphs(message)}</div>"
        )
        subject = f"Contact Form: {f'[{category}] ' if category else ''}{name}"
        email_sent = self._notify_admin(subject, body, reply_to=email)

        logger.info(f"Contact form lead {lead.id} stored", extra={"lead_id": lead.id})
        return {"lead_id": lead.id, "email_sent": email_sent}

    def submit_feedback(
        self,
        db: Session,
        feedback_type: str,
        message: str,
        rating: Optional[int] = None,
        user_id: Optional[str] = None,
        name: Optional[str] = None,
        email: Optional[str] = None
    ) -> Dict:
        """Store feedback and email it to the admin."""
        if feedback_type not in FEEDBACK_TYPES:
            raise ValueError(f"Unknown feedback type: {feedback_type}")
        if rating is not None and not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        message = sanitize_input(message or "")
        if not message:
            raise ValueError("Feedback message is required")

        feedback = Feedback(
            user_id=user_id,
            feedback_type=feedback_type,
            rating=rating,
            message=message,
            name=name,
            email=email
        )
        db.add(feedback)
        db.commit()

        stars = f"{rating}/5" if rating is not None else "Not rated"
        body = (
            f"<h2>New {html.escape(feedback_type.title())} Feedback</h2>"
            f"<p><strong>From:</strong> {html.escape(name or 'Anonymous')} ({html.escape(email or 'no email')})</p>"
            f"<p><strong>Rating:</strong> {stars}</p>"
            f"<div>{_paragraphs(message)}</div>"
        )
        email_sent = self._notify_admin(f"Feedback: {feedback_type}", body, reply_to=email)

        return {"feedback_id": feedback.id, "email_sent": email_sent}

    def list_feedback(self, db: Session, status: Optional[str] = None) -> List[Feedback]:
        query = db.query(Feedback)
        if status:
            query = query.filter(Feedback.status == status)
        return query.order_by(Feedback.created_at.desc()).all()

    def update_feedback_status(self, db: Session, feedback_id: str, status: str) -> Feedback:
        feedback = db.get(Feedback, feedback_id)
        if feedback is None:
            raise NotFoundError("Feedback", feedback_id)
        feedback.status = status
        db.commit()
        return feedback

    def capture_chat_lead(self, db: Session, conversation: ChatbotConversation) -> Lead:
        """
        Record (or refresh) the lead for a registration-assistant conversation.
        """
        contact = conversation.contact_info or {}
        care_needs = conversation.care_needs or {}
        name = " ".join(p for p in (contact.get("firstName"), contact.get("lastName")) if p) or None

        lead = db.query(Lead).filter(Lead.conversation_id == conversation.id).first()
        if lead is None:
            lead = Lead(source="chatbot", conversation_id=conversation.id)
            db.add(lead)
            metrics_collector.record_lead("chatbot")

        lead.name = name
        lead.email = contact.get("email")
        lead.phone = contact.get("phone")
        lead.role = care_needs.get("role")
        lead.lead_score = conversation.lead_score or 0
        db.commit()

        logger.info(
            f"Chat lead captured for conversation {conversation.id}",
            extra={"lead_id": lead.id, "lead_score": lead.lead_score}
        )
        return lead

    def list_leads(self, db: Session, source: Optional[str] = None, limit: int = 100) -> List[Lead]:
        query = db.query(Lead)
        if source:
            query = query.filter(Lead.source == source)
        return query.order_by(Lead.lead_score.desc(), Lead.created_at.desc()).limit(limit).all()
