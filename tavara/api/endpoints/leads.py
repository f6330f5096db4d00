"""
Tavara.care Coordination Service - Lead & Feedback Routes

Public intake endpoints. Submissions are stored even when the admin
email cannot be sent; email_sent reports the delivery.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import check_rate_limit, get_request_id, validate_request
from tavara.api.schemas import ContactFormRequest, FeedbackRequest
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.lead_service import LeadService

router = APIRouter(prefix="/leads", tags=["Leads"])
lead_service = LeadService()


@router.post("/contact", status_code=status.HTTP_201_CREATED, summary="Submit the contact form")
def submit_contact(
    body: ContactFormRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    _: None = Depends(check_rate_limit),
    context: dict = Depends(validate_request)
):
    log_request(endpoint="/leads/contact", method="POST", request_id=request_id,
                category=body.category, utm_source=body.utm_source)
    return lead_service.submit_contact_form(
        db,
        body.name,
        body.email,
        body.message,
        category=body.category,
        phone=body.phone,
        utm_source=body.utm_source,
        utm_campaign=body.utm_campaign
    )


@router.post("/feedback", status_code=status.HTTP_201_CREATED, summary="Submit feedback")
def submit_feedback(
    body: FeedbackRequest,
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
    db: Session = Depends(get_db),
    _: None = Depends(check_rate_limit),
    context: dict = Depends(validate_request)
):
    user_id = x_user_id if x_user_id and db.get(Profile, x_user_id) is not None else None
    return lead_service.submit_feedback(
        db,
        body.feedback_type,
        body.message,
        rating=body.rating,
        user_id=user_id,
        name=body.name,
        email=body.email
    )
