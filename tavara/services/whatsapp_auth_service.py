"""
Tavara.care Coordination Service - WhatsApp Authentication

Phone sign-in: a six-digit code is sent over WhatsApp and verified
against the whatsapp_auth row for that number. A verified number is
linked to a profile under a synthetic email address.
"""

import re
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import (
    ROLES,
    DEFAULT_COUNTRY_CODE,
    VERIFICATION_MESSAGE,
    WHATSAPP_EMAIL_DOMAIN
)
from tavara.core.errors import NotFoundError, IntegrationError
from tavara.core.logging import logger
from tavara.core.security import generate_verification_code
from tavara.core.settings import get_settings
from tavara.db.models import WhatsAppAuth, Profile
from tavara.monitoring.audit_logger import audit_logger
from tavara.services.notification_service import NotificationService

settings = get_settings()


def format_phone_number(phone_number: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Normalize a phone number to E.164.

    Numbers already starting with 1 get a plus sign, bare ten digit numbers
    are treated as North American, anything else gets the country code.
    """
    digits = re.sub(r"\D", "", phone_number or "")
    if digits.startswith("1"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{country_code}{digits}"


def whatsapp_email(formatted_number: str) -> str:
    return f"{re.sub(r'[^0-9]', '', formatted_number)}@{WHATSAPP_EMAIL_DOMAIN}"


class WhatsAppAuthService:
    """Verification codes over WhatsApp."""

    def __init__(self, notification_service: NotificationService = None):
        self.notification_service = notification_service or NotificationService()
        logger.info("WhatsAppAuthService initialized")

    def send_code(
        self,
        db: Session,
        phone_number: str,
        role: str,
        country_code: str = DEFAULT_COUNTRY_CODE,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Issue a verification code for a phone number.

        The code replaces any earlier one and resets the attempt counter.
        Outside production a failed delivery still succeeds and returns the
        code as dev_code.

        Raises:
            ValueError: phone number or role missing
            IntegrationError: delivery failed in production
        """
        if not phone_number or not role:
            raise ValueError("Phone number and role are required")
        if role not in ROLES or role == "admin":
            raise ValueError(f"Unknown role: {role}")

        now = now or datetime.utcnow()
        formatted = format_phone_number(phone_number, country_code or DEFAULT_COUNTRY_CODE)
        code = generate_verification_code()

        record = db.query(WhatsAppAuth).filter(WhatsAppAuth.phone_number == phone_number).first()
        if record is None:
            record = WhatsAppAuth(phone_number=phone_number)
            db.add(record)
        record.formatted_number = formatted
        record.verification_code = code
        record.code_expires_at = now + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
        record.user_role = role
        record.country_code = country_code
        record.verification_attempts = 0
        record.is_verified = False
        db.commit()

        message = VERIFICATION_MESSAGE.format(code=code, minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
        delivered = self.notification_service.send_whatsapp(db, formatted, message, "verification_code")

        if not delivered:
            if settings.ENVIRONMENT == "production":
                raise IntegrationError("whatsapp", "Failed to send WhatsApp message")
            logger.warning(f"Verification code for ...{formatted[-4:]} not delivered; returning dev code")
            return {
                "success": True,
                "message": "Verification code generated (development mode)",
                "formatted_number": formatted,
                "dev_code": code,
                "warning": "WhatsApp delivery failed; use the development code"
            }

        logger.info(f"Verification code sent to ...{formatted[-4:]}")
        return {
            "success": True,
            "message": "Verification code sent via WhatsApp",
            "formatted_number": formatted
        }

    def verify_code(
        self,
        db: Session,
        phone_number: str,
        code: str,
        role: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Check a submitted code and sign the number in.

        The profile role is the one the code was requested for; a different
        role in the request is refused.

        Returns:
            Dict: success, user_id, email, phone_number, role and redirect_to

        Raises:
            NotFoundError: no code was issued for the number
            ValueError: role mismatch, expired, too many attempts, or wrong code
        """
        now = now or datetime.utcnow()
        record = db.query(WhatsAppAuth).filter(WhatsAppAuth.phone_number == phone_number).first()
        if record is None:
            raise NotFoundError("WhatsAppAuth", phone_number)

        if role and role != record.user_role:
            audit_logger.log_verification(record.formatted_number, False, "role_mismatch")
            raise ValueError(f"Code was not requested for role: {role}")

        if record.code_expires_at is None or record.code_expires_at < now:
            audit_logger.log_verification(record.formatted_number, False, "expired")
            raise ValueError("Verification code has expired. Please request a new one.")

        if (record.verification_attempts or 0) >= settings.VERIFICATION_MAX_ATTEMPTS:
            audit_logger.log_verification(record.formatted_number, False, "too_many_attempts")
            raise ValueError("Too many verification attempts. Please request a new code.")

        if record.verification_code != (code or "").strip():
            record.verification_attempts = (record.verification_attempts or 0) + 1
            record.last_verification_attempt = now
            db.commit()
            audit_logger.log_verification(record.formatted_number, False, "invalid_code")
            raise ValueError("Invalid verification code")

        record.is_verified = True
        record.verification_code = None
        record.code_expires_at = None
        record.last_verification_attempt = now

        user_role = record.user_role or "family"
        email = whatsapp_email(record.formatted_number)
        profile = db.query(Profile).filter(Profile.email == email).first()
        if profile is None:
            profile = Profile(email=email, phone_number=record.formatted_number, role=user_role)
            db.add(profile)
            logger.info(f"Profile created for WhatsApp number ...{record.formatted_number[-4:]}")
        db.commit()

        audit_logger.log_verification(record.formatted_number, True)
        return {
            "success": True,
            "user_id": profile.id,
            "email": email,
            "phone_number": record.formatted_number,
            "role": profile.role,
            "redirect_to": f"/dashboard/{profile.role}"
        }
